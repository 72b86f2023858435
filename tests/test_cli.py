# tests/test_cli.py
from typer.testing import CliRunner

from skillreg.adapters.fs.path_provider import RegistryPaths

from conftest import skill_doc


def _skill_file(tmp_path, title="Alpha", **kw):
    path = tmp_path / f"{title.lower()}.md"
    path.write_text(skill_doc(title, **kw), encoding="utf-8")
    return path


def test_cli_help(cli_app):
    r = CliRunner().invoke(cli_app, ["--help"])
    assert r.exit_code == 0
    assert "Usage" in r.stdout
    for cmd in ("publish", "sync", "cache"):
        assert cmd in r.stdout


def test_project_flow(cli_app, tmp_path, project_root):
    runner = CliRunner()

    r = runner.invoke(cli_app, ["publish", "alpha", "--content", str(_skill_file(tmp_path)), "--tags", "db,ops"])
    assert r.exit_code == 0, r.output
    assert "Published" in r.output

    r = runner.invoke(cli_app, ["init"])
    assert r.exit_code == 0, r.output
    assert "Created" in r.output
    assert (project_root / ".skills.yaml").exists()
    assert ".claude/skills/" in (project_root / ".gitignore").read_text(encoding="utf-8")

    r = runner.invoke(cli_app, ["add", "alpha"])
    assert r.exit_code == 0, r.output
    assert "updated 1" in r.output
    assert (project_root / ".claude" / "skills" / "alpha" / "SKILL.md").exists()

    r = runner.invoke(cli_app, ["sync"])
    assert r.exit_code == 0, r.output
    assert "unchanged 1" in r.output

    r = runner.invoke(cli_app, ["list", "--installed"])
    assert r.exit_code == 0
    assert "alpha" in r.output

    r = runner.invoke(cli_app, ["remove", "alpha"])
    assert r.exit_code == 0, r.output
    assert not (project_root / ".claude" / "skills" / "alpha").exists()


def test_sync_reports_errors_with_exit_code(cli_app, project):
    runner = CliRunner()
    r = runner.invoke(cli_app, ["add", "ghost"])
    assert r.exit_code == 1
    assert "ghost" in r.output
    assert "not_found" in r.output


def test_commands_require_project(cli_app):
    r = CliRunner().invoke(cli_app, ["sync"])
    assert r.exit_code == 1
    assert "not in a skills project" in r.output


def test_registry_listing_and_search(cli_app, tmp_path):
    runner = CliRunner()
    r = runner.invoke(cli_app, ["list"])
    assert "No skills in local registry" in r.output

    runner.invoke(cli_app, ["publish", "alpha", "--content", str(_skill_file(tmp_path)), "--tags", "db"])
    runner.invoke(cli_app, ["publish", "beta", "--content", str(_skill_file(tmp_path, "Beta")), "-v", "1.0.0"])

    r = runner.invoke(cli_app, ["list", "--tags", "db"])
    assert "alpha" in r.output
    assert "beta" not in r.output

    r = runner.invoke(cli_app, ["info", "beta"])
    assert r.exit_code == 0
    assert "1.0.0" in r.output
    assert "Beta skill" in r.output

    r = runner.invoke(cli_app, ["search", "db"])
    assert "alpha" in r.output
    assert "(tags)" in r.output

    r = runner.invoke(cli_app, ["search", "zzz"])
    assert "No skills match" in r.output


def test_registry_errors_are_one_line(cli_app, tmp_path):
    runner = CliRunner()
    r = runner.invoke(cli_app, ["publish", "Bad Slug", "--content", str(_skill_file(tmp_path))])
    assert r.exit_code == 1
    assert "Error:" in r.output
    assert "Traceback" not in r.output

    r = runner.invoke(cli_app, ["info", "ghost"])
    assert r.exit_code == 1
    assert "not found" in r.output

    r = runner.invoke(cli_app, ["delete", "ghost"])
    assert r.exit_code == 1


def test_registry_root_option(cli_app, tmp_path):
    other = tmp_path / "elsewhere"
    r = CliRunner().invoke(cli_app, ["--registry-root", str(other), "publish", "alpha", "--content", str(_skill_file(tmp_path))])
    assert r.exit_code == 0, r.output
    assert RegistryPaths.at(other).meta_path("alpha").exists()


def test_cache_verify_and_clean(cli_app, tmp_path, registry_root):
    runner = CliRunner()
    runner.invoke(cli_app, ["publish", "alpha", "--content", str(_skill_file(tmp_path))])

    r = runner.invoke(cli_app, ["cache", "verify"])
    assert r.exit_code == 0
    assert "1 objects verified" in r.output

    paths = RegistryPaths.at(registry_root)
    obj = next(paths.objects_dir().iterdir())
    obj.write_bytes(b"rot")
    r = runner.invoke(cli_app, ["cache", "verify"])
    assert r.exit_code == 1
    assert obj.name in r.output

    r = runner.invoke(cli_app, ["cache", "clean", "--max-age", "0"])
    assert r.exit_code == 0
    assert "Removed" in r.output


def test_save_command(cli_app, tmp_path, project_root):
    runner = CliRunner()
    runner.invoke(cli_app, ["publish", "alpha", "--content", str(_skill_file(tmp_path))])
    runner.invoke(cli_app, ["init"])
    runner.invoke(cli_app, ["add", "alpha"])

    r = runner.invoke(cli_app, ["save", "alpha"])
    assert r.exit_code == 0
    assert "no changes" in r.output

    (project_root / ".claude" / "skills" / "alpha" / "SKILL.md").write_text(skill_doc("Alpha", body="Edited."), encoding="utf-8")
    r = runner.invoke(cli_app, ["save", "alpha"])
    assert r.exit_code == 0, r.output
    assert "Saved" in r.output
