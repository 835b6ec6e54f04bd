"""Serverless entry point — wraps the FastAPI app for deployment."""
from pathlib import Path
import sys

# Ensure project root is on path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from setup_vault import setup_vault
from support_triage.config import load_config
from support_triage.web import app, build_services, create_app

cfg = load_config()
setup_vault(cfg.vault_path)
services = build_services(cfg)
create_app(
    store=services.store,
    queue=services.queue,
    knowledge_base=services.knowledge_base,
    generator=services.generator,
    sender=services.sender,
)
