"""Project field classification."""

from .field_classifier import classify, classify_input

__all__ = ['classify', 'classify_input']
