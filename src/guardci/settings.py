from __future__ import annotations
import os

RUNS_ON = os.environ.get("GUARDCI_RUNS_ON", "ubuntu-latest")
TOKEN_SECRET = os.environ.get("GUARDCI_TOKEN_SECRET", "GH_PUSH_TOKEN")
WORKFLOW_DIR = os.environ.get("GUARDCI_WORKFLOW_DIR", ".github/workflows")
