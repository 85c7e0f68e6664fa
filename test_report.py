import importlib
import math

import pytest

import report
from rectquad import integrate_expression


def test_save_results(tmp_path):
    integral = integrate_expression("x^2", 0.0, 1.0, 10)
    path = tmp_path / "result.md"
    report.save_results(path, integral)
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# Composite midpoint rule")
    assert "`x^2`" in text
    assert "**Subintervals (n):** 10" in text
    assert f"I_10 = {integral.i_n!r}" in text
    assert f"I_20 = {integral.i_2n!r}" in text
    assert f"I_R = {integral.refined!r}" in text
    assert f"`{integral.error!r}`" in text
    assert "Exact value" not in text
    assert "Generated:" in text


def test_save_results_with_exact_value(tmp_path):
    integral = integrate_expression("x", 0.0, 2.0, 4)
    path = tmp_path / "result.md"
    report.save_results(path, integral, exact=2.0)
    text = path.read_text(encoding="utf-8")
    assert "## Exact value = `2.0`" in text
    assert "absolute error" in text
    assert "relative error" in text


def test_main_prints_results(capsys, tmp_path):
    path = tmp_path / "out.md"
    assert report.main(["sin( x )", "0", str(math.pi), "-n", "20", "-o", str(path)]) == 0
    out = capsys.readouterr().out
    assert "f(x) = sin(x)" in out
    assert "I_20 = " in out
    assert "I_40 = " in out
    assert "Richardson: I_R = " in out
    assert path.exists()


def test_main_with_exact_and_no_report(capsys, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert report.main(["2*x+3", "0", "4", "--exact", "28"]) == 0
    assert "abs error" in capsys.readouterr().out
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("expression", ["(x", "x+y", "sqrt(x-5)"])
def test_main_reports_failures(expression, caplog):
    assert report.main([expression, "0", "1"]) == 1
    assert "Cannot integrate" in caplog.text


@pytest.mark.parametrize("n", ["0", "-2", "two"])
def test_main_rejects_bad_subinterval_count(n):
    with pytest.raises(SystemExit):
        report.main(["x", "0", "1", "-n", n])


@pytest.mark.parametrize("value", ["0", "-5", "many"])
def test_env_default_subinterval_count_is_validated(value, monkeypatch):
    monkeypatch.setenv("RECTQUAD_N", value)
    try:
        importlib.reload(report)
        with pytest.raises(SystemExit):
            report.main(["x", "0", "1"])
    finally:
        monkeypatch.delenv("RECTQUAD_N")
        importlib.reload(report)


def test_env_default_subinterval_count(monkeypatch, capsys):
    monkeypatch.setenv("RECTQUAD_N", "8")
    try:
        importlib.reload(report)
        assert report.main(["x", "0", "1"]) == 0
        assert "I_16 = " in capsys.readouterr().out
    finally:
        monkeypatch.delenv("RECTQUAD_N")
        importlib.reload(report)
