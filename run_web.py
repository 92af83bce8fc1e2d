#!/usr/bin/env python3
"""
Main entry point for the Floorball Live web application.

This script launches the Flask-based web server. When the environment
variable FLOORBALL_LIVE_DATA names a JSON file, the store is loaded from it
(if present) and saved back after every write.
"""
import logging
import os

from floorball_live.services import PersistenceService
from floorball_live.ui.web_app import run_web_app
from floorball_live.utils import DATA_FILE_ENV_VAR


def build_store() -> PersistenceService:
    data_file = os.environ.get(DATA_FILE_ENV_VAR)
    if not data_file:
        return PersistenceService()
    if os.path.exists(data_file):
        return PersistenceService.load_from_file(data_file, autosave=True)
    return PersistenceService(file_path=data_file)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_web_app(store=build_store())
