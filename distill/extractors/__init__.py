"""Extraction sub-package: the scoring and cleanup passes behind distill.extract."""

from .classifier import CLASSIFIER, Classification, Classifier
from .main_content import extract_main_content
from .metadata import extract_metadata
from .readerable import is_probably_readerable

__all__ = [
    "CLASSIFIER",
    "Classification",
    "Classifier",
    "extract_main_content",
    "extract_metadata",
    "is_probably_readerable",
]
