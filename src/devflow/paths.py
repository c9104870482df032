"""Unified path constants for devflow.

All state is stored under the .devflow directory:
- .devflow/config.json                        # Preferences document
- .devflow/templates/templates.json           # Template catalog manifest
- .devflow/templates/<template_id>/...        # Template source files
- .devflow/data/deployment-history.json       # Deployment history ring
- .devflow/data/knowledge-base.json           # Knowledge store
"""

from pathlib import Path

BASE_DIR = Path(".devflow")

CONFIG_FILE = BASE_DIR / "config.json"
TEMPLATES_DIR = BASE_DIR / "templates"
DATA_DIR = BASE_DIR / "data"
HISTORY_FILE_NAME = "deployment-history.json"
KNOWLEDGE_FILE_NAME = "knowledge-base.json"
TEMPLATES_MANIFEST_NAME = "templates.json"
