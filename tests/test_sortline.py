import io

from jitkit.sortline import main, sort_lines


def test_dedup_and_sort():
    assert sort_lines(["b", "a", "b", "c", "a"]) == ["a", "b", "c"]


def test_drops_empty_lines():
    assert sort_lines(["", "x", "\n", ""]) == ["x"]


def test_strips_newline():
    assert sort_lines(["b\n", "a\n", "b"]) == ["a", "b"]


def test_output_is_sorted_and_unique():
    data = ["vaddps", "vaddpd", "vaddps", "addps", "Vaddps"]
    result = sort_lines(data)
    assert result == sorted(set(data))
    assert len(result) == len(set(result))


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("zeta\nalpha\n\nzeta\nbeta\n"))
    assert main([]) == 0
    assert capsys.readouterr().out.splitlines() == ["alpha", "beta", "zeta"]