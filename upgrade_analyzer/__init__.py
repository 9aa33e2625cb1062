"""TYPO3 upgrade analyzer: installation path resolution."""

__version__ = "0.1.0"
