"""Customer helpers."""

from .addresses import choose_destination, candidate_addresses

__all__ = ["choose_destination", "candidate_addresses"]
