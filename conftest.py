import pytest
import subprocess
from unittest.mock import MagicMock
from coupling import ProgressReporter, CouplingGraph, GitHistory

@pytest.fixture
def quiet_reporter():
    return ProgressReporter(quiet=True)

@pytest.fixture
def graph():
    return CouplingGraph()

@pytest.fixture
def fake_history():
    """History stub yielding prepared delta lists, one per transition."""
    h = MagicMock(spec=GitHistory)
    h.repo_path = "/fake/repo"
    return h

@pytest.fixture
def git_repo(tmp_path):
    repo = tmp_path / "repo"
    repo.mkdir()

    def run(*args):
        subprocess.run(["git", "-C", str(repo)] + list(args),
                       check=True, capture_output=True)

    run("init")
    run("config", "user.email", "tester@test.com")
    run("config", "user.name",  "Tester")
    run("config", "commit.gpgsign", "false")

    # Commit 1 — add two files
    (repo / "a.rb").write_text("class A; end\n", encoding='utf-8')
    (repo / "b.rb").write_text("class B; end\n", encoding='utf-8')
    run("add", ".")
    run("commit", "-m", "initial")

    # Commit 2 — modify both, add a third (co-change of a, b, c)
    (repo / "a.rb").write_text("class A\nend\n", encoding='utf-8')
    (repo / "b.rb").write_text("class B\nend\n", encoding='utf-8')
    (repo / "c.rb").write_text("class C; end\n", encoding='utf-8')
    run("add", ".")
    run("commit", "-m", "touch a, b and c")

    # Commit 3 — delete b, add a config file (rejected) and x
    (repo / "config").mkdir()
    (repo / "config" / "app.rb").write_text("CONFIG = 1\n", encoding='utf-8')
    (repo / "x.rb").write_text("class X; end\n", encoding='utf-8')
    run("rm", "-q", "b.rb")
    run("add", ".")
    run("commit", "-m", "config, x and drop b")

    return str(repo)
