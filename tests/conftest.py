import os
import shutil
import tempfile

_DB_DIR = None


def pytest_configure(config):
    # backend.app builds its history store at import time; keep it out of the cwd
    global _DB_DIR
    _DB_DIR = tempfile.mkdtemp(prefix="bff-tests-")
    os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'query_history.db')}"


def pytest_unconfigure(config):
    if _DB_DIR:
        shutil.rmtree(_DB_DIR, ignore_errors=True)
