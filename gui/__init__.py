"""Reel GUI Package."""
from .worker import MatchWorker, RenameWorker, ScanWorker, VerifyKeyWorker

__all__ = [
    "MatchWorker",
    "RenameWorker",
    "ScanWorker",
    "VerifyKeyWorker",
]
