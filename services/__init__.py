"""
External provider clients for the catalog pipeline: vision description,
entry and embedding generation, image archiving and speech synthesis.
"""

from .archive import CloudinaryArchiver
from .generation import EmbeddingGenerator, EntryGenerator, strip_code_fences
from .providers import ProviderClients, load_prompts
from .vision import VisionDescriber
from .voice import FakeYouClient, VoiceSynthesizer

__all__ = [
    "CloudinaryArchiver",
    "EmbeddingGenerator",
    "EntryGenerator",
    "FakeYouClient",
    "ProviderClients",
    "VisionDescriber",
    "VoiceSynthesizer",
    "load_prompts",
    "strip_code_fences",
]
