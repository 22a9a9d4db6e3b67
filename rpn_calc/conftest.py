import pytest


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")


@pytest.fixture
def history_file(tmp_path, monkeypatch):
    path = tmp_path / "history"
    monkeypatch.setenv("RPN_CALC_HISTORY_FILE", str(path))
    return path
