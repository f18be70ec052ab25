"""Tests for the command line entry point"""

import io
import json

import pytest

from sleuth.main import load_batch, main


@pytest.fixture(autouse=True)
def quiet_env(monkeypatch):
    for name in ("SLEUTH_METRICS_ENABLED", "SLEUTH_MAX_WORKERS", "SLEUTH_TOP_WALLETS", "SLEUTH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def batch_file(tmp_path, healthy_batch):
    path = tmp_path / "batch.json"
    path.write_text(json.dumps({
        "swaps": healthy_batch,
        "pool": {"tvlUSD": 2_000_000},
        "history": {"tvlTrend": "stable", "dataPoints": 5, "daysTracked": 4},
    }))
    return path


class TestMain:

    def test_writes_output_file(self, batch_file, tmp_path):
        output = tmp_path / "result.json"

        assert main(["--input", str(batch_file), "--output", str(output)]) == 0

        data = json.loads(output.read_text())
        assert data["summary"]["total_count"] == 40
        assert data["risk"]["risk_level"] == "very_low"
        assert data["risk"]["total_score"] == 0

    def test_prints_to_stdout(self, batch_file, capsys):
        assert main(["-i", str(batch_file), "--parallel"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["unique_wallets"] == 20

    def test_bare_list_from_stdin(self, monkeypatch, capsys, raw_record):
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps([raw_record(), raw_record()])))

        assert main(["--input", "-"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["total_count"] == 2

    def test_infinite_timestamp_dropped(self, tmp_path, capsys, raw_record):
        path = tmp_path / "batch.json"
        # json.dumps writes the non-standard Infinity literal
        path.write_text(json.dumps([raw_record(), raw_record(timestamp=float("inf"))]))

        assert main(["--input", str(path)]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["total_count"] == 1
        assert data["summary"]["dropped_records"] == 1

    def test_missing_file(self, tmp_path):
        assert main(["--input", str(tmp_path / "nope.json")]) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert main(["--input", str(path)]) == 1

    def test_wrong_document_type(self, tmp_path):
        path = tmp_path / "number.json"
        path.write_text("42")
        assert main(["--input", str(path)]) == 1

    def test_missing_swaps(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"pool": {}}))
        assert main(["--input", str(path)]) == 1

    def test_input_required(self):
        assert main([]) == 2

    def test_invalid_config(self, batch_file, monkeypatch):
        monkeypatch.setenv("SLEUTH_TOP_WALLETS", "many")
        assert main(["--input", str(batch_file)]) == 2

    def test_show_config(self, capsys):
        assert main(["--show-config"]) == 0
        assert "Sleuth Configuration Summary" in capsys.readouterr().out


class TestLoadBatch:

    def test_object(self, tmp_path):
        path = tmp_path / "batch.json"
        path.write_text(json.dumps({"swaps": [], "pool": {"tvlUSD": 1}}))
        assert load_batch(str(path)) == {"swaps": [], "pool": {"tvlUSD": 1}}

    def test_list(self, tmp_path):
        path = tmp_path / "batch.json"
        path.write_text("[]")
        assert load_batch(str(path)) == {"swaps": []}
