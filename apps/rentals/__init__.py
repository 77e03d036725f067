"""Rentals app package.

The rental booking engine: availability checks, pricing, the rental
lifecycle, cancellation refunds and extensions. Framework-free logic
lives in ``domain`` and ``application``; Django models, repositories and
the REST API wrap it.
"""
