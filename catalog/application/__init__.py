"""Application layer: read-model DTOs and ports."""
