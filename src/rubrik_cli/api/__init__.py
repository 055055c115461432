"""Endpoint descriptors, request assembly and response reshaping."""
