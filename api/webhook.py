"""Serverless entry point: the platform's Python runtime serves the ASGI `app`."""

from pagespeed_watch.main import app
