"""Notifications app package.

In-app notifications and emails sent to rental participants. Delivery
runs in Celery workers so rental operations never wait on it.
"""
