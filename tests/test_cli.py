import pytest

from regulatix.cli import main

FULL_HEADER = (
    "Time,PID I,PID P,PID D,PID Output,Error,Generator Output,ARX Output,ARX Noise"
)


def _lines(text):
    return [line for line in text.splitlines() if line]


def test_steps_write_header_and_one_row_per_tick(capsys):
    assert main(["--steps", "5", "--noise", "0"]) == 0
    lines = _lines(capsys.readouterr().out)
    assert lines[0] == FULL_HEADER
    assert len(lines) == 6
    assert [int(line.split(",")[0]) for line in lines[1:]] == [0, 1, 2, 3, 4]
    assert all(len(line.split(",")) == 9 for line in lines[1:])


def test_without_noise_runs_are_identical(capsys):
    main(["--steps", "8", "--noise", "0"])
    first = capsys.readouterr().out
    main(["--steps", "8", "--noise", "0"])
    assert capsys.readouterr().out == first


def test_seed_makes_noise_reproducible(capsys):
    main(["--steps", "6", "--seed", "7", "--noise", "0.5"])
    first = capsys.readouterr().out
    main(["--steps", "6", "--seed", "7", "--noise", "0.5"])
    assert capsys.readouterr().out == first


def test_column_selection(capsys):
    assert main(["--steps", "3", "--noise", "0", "--columns", "error,arx_output"]) == 0
    lines = _lines(capsys.readouterr().out)
    assert lines[0] == "Time,Error,ARX Output"
    assert all(len(line.split(",")) == 3 for line in lines)


def test_unknown_column_is_rejected():
    with pytest.raises(SystemExit) as info:
        main(["--steps", "1", "--columns", "bogus"])
    assert info.value.code == 2


def test_duration_sets_number_of_steps(capsys):
    assert main(["--duration", "1", "--interval", "100", "--noise", "0"]) == 0
    lines = _lines(capsys.readouterr().out)
    assert len(lines) == 1 + 10


def test_nothing_to_do_is_an_error():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2


def test_negative_steps_rejected():
    with pytest.raises(SystemExit) as info:
        main(["--steps", "-1"])
    assert info.value.code == 2


def test_show_config_reports_overrides(capsys):
    assert main(["--kp", "2", "--a", "0.5,0.25", "--generator-type", "square", "--show-config"]) == 0
    out = _lines(capsys.readouterr().out)
    assert "kp=2" in out
    assert "a=0.5,0.25" in out
    assert "generator_type=square" in out


def test_save_and_load_round_trip(tmp_path, capsys):
    config = tmp_path / "sim.dat"
    assert main(
        ["--save", str(config), "--kp", "2", "--ti", "4", "--a", "0.5,0.25",
         "--noise-type", "uniform", "--delay", "3", "--interval", "50"]
    ) == 0
    assert config.exists()
    capsys.readouterr()
    assert main(["--load", str(config), "--show-config"]) == 0
    out = _lines(capsys.readouterr().out)
    for expected in ("kp=2", "ti=4", "a=0.5,0.25", "noise_type=uniform", "delay=3", "interval=50"):
        assert expected in out


def test_load_missing_file_fails(tmp_path, capsys):
    assert main(["--load", str(tmp_path / "missing.dat"), "--show-config"]) == 1
    assert "cannot load" in capsys.readouterr().err


def test_load_truncated_file_fails(tmp_path):
    config = tmp_path / "bad.dat"
    config.write_bytes(b"\x00\x01")
    assert main(["--load", str(config), "--show-config"]) == 1


def test_export_then_replay_reproduces_csv(tmp_path):
    recorded = tmp_path / "run.csv"
    replayed = tmp_path / "replayed.csv"
    assert main(["--steps", "12", "--noise", "0", "--export", str(recorded)]) == 0
    assert main(["--replay", str(recorded), "--export", str(replayed)]) == 0
    assert replayed.read_text() == recorded.read_text()


def test_replay_with_bad_header_fails(tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("Time,Error\n0,1\n")
    assert main(["--replay", str(bad)]) == 1
    assert "invalid header" in capsys.readouterr().err


def test_realtime_needs_duration():
    with pytest.raises(SystemExit) as info:
        main(["--realtime"])
    assert info.value.code == 2