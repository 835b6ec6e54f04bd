def test_setup_vault_creates_all_folders(tmp_path):
    from setup_vault import setup_vault
    setup_vault(tmp_path)
    for folder in ["Emails", "Logs"]:
        assert (tmp_path / folder).is_dir(), f"Missing folder: {folder}"


def test_setup_vault_creates_handbook(tmp_path):
    from setup_vault import setup_vault
    setup_vault(tmp_path)
    handbook = tmp_path / "Support_Handbook.md"
    assert handbook.exists()
    assert "# Support Handbook" in handbook.read_text()


def test_setup_vault_keeps_edited_handbook(tmp_path):
    """setup_vault should not overwrite a customized handbook."""
    from setup_vault import setup_vault
    (tmp_path / "Support_Handbook.md").write_text("# Custom rules")
    setup_vault(tmp_path)
    assert (tmp_path / "Support_Handbook.md").read_text() == "# Custom rules"


def test_setup_vault_creates_missing_root(tmp_path):
    from setup_vault import setup_vault
    vault = tmp_path / "nested" / "vault"
    setup_vault(vault)
    assert (vault / "Emails").is_dir()
