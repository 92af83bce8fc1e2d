"""
UI package for Floorball Live.

This package contains the Flask web server used by the admin console and the
public live pages.
"""
from .web_app import create_app, run_web_app, WebAppState

__all__ = ["create_app", "run_web_app", "WebAppState"]
