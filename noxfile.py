import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# psycopg2 ships a C extension; a cached wheel may target another interpreter
_REBUILD = ["psycopg2-binary"]


def _install(session: nox.Session) -> None:
    session.run("poetry", "install", "--all-extras", external=True)
    session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *_REBUILD)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the whole suite."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Aggregates, matrix and ledger logic, locks and the client; no HTTP app."""
    _install(session)
    session.run("pytest", "-m", "domain", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_api(session: nox.Session) -> None:
    """HTTP surface and behaviour scenarios."""
    _install(session)
    session.run("pytest", "-m", "integration or bdd", *session.posargs)
