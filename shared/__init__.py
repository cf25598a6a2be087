"""Shared configuration, logging, schemas and service base for the catalog API."""
