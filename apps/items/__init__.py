"""Items app package.

Rentable items listed by their owners. The booking engine only reads
items; listing management (search, photos, categories) lives elsewhere.
"""
