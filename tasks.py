from itertools import chain
from pathlib import Path
from shutil import rmtree

from invoke import UnexpectedExit, task

TOP_DIR = Path(__file__).parent
SRC_DIR = TOP_DIR / "src"
SRC_ENV = {"PYTHONPATH": str(SRC_DIR)}
PAGE = TOP_DIR / "site" / "index.html"


def source_arg(pattern):
    """Converts a source pattern to a command line argument."""
    if pattern is None:
        paths = chain(
            SRC_DIR.glob("**/*.py"),
            (TOP_DIR / "tests").glob("**/*.py"),
            [Path(__file__)],
        )
    else:
        paths = Path.cwd().glob(pattern)
    for path in paths:
        yield str(path)


def remove_dir(path):
    """Recursively removes a directory."""
    if path.exists():
        rmtree(path)


@task
def clean(c):
    """Clean up our output."""
    print("Cleaning up...")
    for name in ("junit.xml", "result.properties"):
        output = TOP_DIR / name
        if output.is_file():
            output.unlink()
    remove_dir(TOP_DIR / ".pytest_cache")


@task
def lint(c, src=None):
    """Check sources with PyLint."""
    print("Checking sources with PyLint...")
    cmd = ["pylint"]
    sources = set(source_arg(src))
    sources.remove(__file__)
    cmd += sorted(sources)
    with c.cd(str(TOP_DIR)):
        c.run(" ".join(cmd), env=SRC_ENV, warn=True, pty=True)


@task
def types(c, src=None, clean=False):
    """Check sources with mypy."""
    if clean:
        print("Clearing mypy cache...")
        remove_dir(TOP_DIR / ".mypy_cache")
    print("Checking sources with mypy...")
    cmd = ["mypy"]
    sources = set(source_arg(src))
    sources.remove(__file__)
    cmd += sorted(sources)
    with c.cd(str(TOP_DIR)):
        try:
            c.run(" ".join(cmd), env=SRC_ENV, pty=True)
        except UnexpectedExit as ex:
            if ex.result.exited < 0:
                print(ex)


@task
def check(c, service=None, junit_xml=None):
    """Check the Hello World page."""
    args = ["pagecheck", str(PAGE)]
    if service is not None:
        args += ["--check", service]
    if junit_xml is not None:
        args.append(f"--junit={junit_xml}")
    with c.cd(str(TOP_DIR)):
        c.run(" ".join(args), env=SRC_ENV, pty=True)


@task
def unittest(c, junit_xml=None):
    """Run unit tests."""
    args = ["pytest"]
    if junit_xml is not None:
        args.append(f"--junit-xml={junit_xml}")
    args.append("tests")
    with c.cd(str(TOP_DIR)):
        c.run(" ".join(args), env=SRC_ENV, pty=True)


@task(post=[check, unittest, lint])
def test(c):
    """Run all tests."""
