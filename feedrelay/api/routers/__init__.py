"""Endpoint groups mounted by :func:`feedrelay.api.app.create_app`."""
