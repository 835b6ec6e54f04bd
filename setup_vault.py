"""One-time vault initialization for the support triage assistant."""
from pathlib import Path

VAULT_FOLDERS = ["Emails", "Logs"]

DEFAULT_HANDBOOK = """\
# Support Handbook

## About
House rules for drafted customer replies. Edit this file to change the
tone and commitments the assistant uses when it writes to customers.

## Commitments
- Urgent issues: first detailed response within 2-4 hours
- Standard issues: first detailed response within 24 hours
- Never promise refunds or credits; route them to the billing team

## Tone & Style
- Professional, warm and concise
- Acknowledge frustration before proposing fixes
- Close with a clear next step for the customer
"""


def setup_vault(vault_path: Path) -> None:
    vault_path.mkdir(parents=True, exist_ok=True)
    for folder in VAULT_FOLDERS:
        (vault_path / folder).mkdir(exist_ok=True)
    handbook = vault_path / "Support_Handbook.md"
    if not handbook.exists():
        handbook.write_text(DEFAULT_HANDBOOK)


if __name__ == "__main__":
    from support_triage.config import load_config
    cfg = load_config()
    setup_vault(cfg.vault_path)
    print(f"Vault initialized at: {cfg.vault_path}")
