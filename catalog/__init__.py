"""Catalog: transactional, cache-coherent data-access core for the affiliate catalog."""
