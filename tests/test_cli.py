from pathlib import Path
import subprocess

from click.testing import CliRunner

from folio.build import BuildResult
from folio.cli import _try_git_init, cli
from folio.content import EntryBuilder
from folio.entries import EntryRegistry
from folio.layouts import LayoutKind

SKIP_GIT = {"FOLIO_SKIP_GIT_INIT": "1"}


def scaffold(tmp_path: Path) -> Path:
    project = tmp_path / "mysite"
    result = CliRunner().invoke(cli, ["new", str(project)], env=SKIP_GIT)
    assert result.exit_code == 0
    return project


def mock_prompts(monkeypatch, answers):
    responses = iter(answers)

    def mock_question(*args, **kwargs):
        class MockQuestion:
            def ask(self):
                return next(responses)

        return MockQuestion()

    monkeypatch.setattr("folio.cli.questionary.text", mock_question)
    monkeypatch.setattr("folio.cli.questionary.select", mock_question)


def test_cli_new_scaffolds_project(tmp_path):
    runner = CliRunner()
    target = scaffold(tmp_path)
    assert (target / "folio.yaml").exists()
    assert (target / "data" / "site.yaml").exists()
    assert (target / "images").is_dir()
    post = (target / "posts" / "happy-new-year.md").read_text(encoding="utf-8")
    assert "path: /blog/happy-new-year" in post

    # fails on non-empty directory
    result = runner.invoke(cli, ["new", str(target)], env=SKIP_GIT)
    assert result.exit_code != 0
    assert "non-empty" in result.output


def test_cli_build_scaffolded_project(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 1 posts" in result.output
    page = project / "output" / "blog" / "happy-new-year" / "index.html"
    assert "Happy New Year" in page.read_text(encoding="utf-8")


def test_cli_build_and_serve(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)

    def fake_build_site(root, include_drafts=False, root_url=None, clean_output=True, output_dir_override=None):
        out = root / "output"
        out.mkdir()
        return BuildResult(registry=EntryRegistry(), output_dir=out, data={})

    called = {}

    class DummyServer:
        def __init__(self, root, http_port=None, ws_port=None):
            self.root = root
            called["port"] = http_port
            called["ws_port"] = ws_port

        def start(self, include_drafts=False):
            called["drafts"] = include_drafts

    monkeypatch.setattr("folio.build.build_site", fake_build_site)
    monkeypatch.setattr("folio.server.DevServer", DummyServer)

    result = runner.invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 0 posts" in result.output

    result = runner.invoke(
        cli, ["serve", "--drafts", "--port", "5050", "--ws-port", "5051"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert called == {"port": 5050, "ws_port": 5051, "drafts": True}


def test_cli_build_reports_errors(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "posts" / "broken.md").write_text(
        "---\ntitle: Broken\nlayout: carousel\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "broken.md" in result.output


def test_cli_list_newest_first(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "posts" / "binary-objections.md").write_text(
        "---\ntitle: Binary Objections\ndate: 3-1-2020\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["list"], catch_exceptions=False)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert "Binary Objections" in lines[0]
    assert "/blog/binary-objections" in lines[0]
    assert "Happy New Year" in lines[1]


def test_cli_list_empty(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["list"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "No posts found." in result.output


def test_cli_show(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "posts" / "binary-objections.md").write_text(
        "---\ntitle: Binary Objections\ndate: 3-1-2020\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)
    runner = CliRunner()

    result = runner.invoke(cli, ["show", "happy-new-year"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "url:    /blog/happy-new-year" in result.output
    assert "layout: default" in result.output
    assert "images:" not in result.output

    result = runner.invoke(cli, ["show", "binary-objections"], catch_exceptions=False)
    assert "layout: gallery" in result.output
    assert "images: binary-objections" in result.output

    result = runner.invoke(cli, ["show", "nope"])
    assert result.exit_code != 0
    assert "Post not found: nope" in result.output


def test_post_command_requires_project(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "No folio.yaml found" in result.output


def test_post_command_creates_gallery_post(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    mock_prompts(monkeypatch, ["Binary Objections", "gallery"])

    result = CliRunner().invoke(cli, ["post"], catch_exceptions=False)
    assert result.exit_code == 0
    created = project / "posts" / "binary-objections.md"
    content = created.read_text(encoding="utf-8")
    assert "title: Binary Objections" in content
    assert "path: /blog/binary-objections" in content
    assert "layout: gallery" in content
    assert (project / "images" / "binary-objections").is_dir()


def test_post_command_rejects_existing_file(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    mock_prompts(monkeypatch, ["Happy New Year", "default"])
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "File already exists" in result.output


def test_post_command_rejects_duplicate_identifier(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "posts" / "older.md").write_text(
        "---\ntitle: Older\npath: /blog/my-post\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)
    mock_prompts(monkeypatch, ["My Post", "default"])
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "A post with id 'my-post' already exists: older.md" in result.output
    assert not (project / "posts" / "my-post.md").exists()


def test_post_command_aborts_on_cancel(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    mock_prompts(monkeypatch, [None])
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0


def test_post_command_frontmatter_reads_back(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    titles = {
        "Yes": "yes",
        "On": "on",
        "C:\\temp notes": "c-temp-notes",
        "- dash": "dash",
        "Part 1: Intro #2": "part-1-intro-2",
    }
    for title, post_id in titles.items():
        mock_prompts(monkeypatch, [title, "default"])
        result = CliRunner().invoke(cli, ["post"], catch_exceptions=False)
        assert result.exit_code == 0

        entry = EntryBuilder().build(project / "posts" / f"{post_id}.md")
        assert entry.metadata.name == title
        assert entry.id == post_id
        assert entry.metadata.url == f"/blog/{post_id}"
        assert entry.layout is LayoutKind.DEFAULT


def test_try_git_init(monkeypatch, tmp_path):
    calls = []
    monkeypatch.delenv("FOLIO_SKIP_GIT_INIT", raising=False)
    monkeypatch.setattr("folio.cli.shutil.which", lambda cmd: "/usr/bin/git")

    def fake_run(args, cwd, check, capture_output):
        calls.append((args, cwd))

    monkeypatch.setattr("folio.cli.subprocess.run", fake_run)
    _try_git_init(tmp_path)
    assert calls == [(["/usr/bin/git", "init"], tmp_path)]


def test_try_git_init_skipped(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr("folio.cli.subprocess.run", lambda *args, **kwargs: calls.append(args))
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "1")
    _try_git_init(tmp_path)
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "0")
    monkeypatch.setattr("folio.cli.shutil.which", lambda cmd: None)
    _try_git_init(tmp_path)
    assert calls == []


def test_try_git_init_failure(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("FOLIO_SKIP_GIT_INIT", raising=False)
    monkeypatch.setattr("folio.cli.shutil.which", lambda cmd: "/usr/bin/git")

    def fake_run(*args, **kwargs):
        raise subprocess.CalledProcessError(1, "git")

    monkeypatch.setattr("folio.cli.subprocess.run", fake_run)
    _try_git_init(tmp_path)
    assert "git init failed" in capsys.readouterr().err


def test_module_main_entrypoint():
    from folio.__main__ import main

    assert callable(main)
