import json
from datetime import date, timedelta

import numpy as np

from music_popularity_gru.scripts.train_popularity_model import main


def write_chart_csv(path, num_tracks=3, num_days=25):
    rng = np.random.default_rng(5)
    start = date(2024, 5, 1)
    lines = ["Track Name,Track ID,Date,Streams,Danceability,Energy,Valence,Acousticness"]
    for t in range(num_tracks):
        for d in range(num_days):
            lines.append(",".join([
                f'"Song {t}, Live"', f"id{t}", (start + timedelta(days=d)).isoformat(),
                str(int(1000 * (t + 1) + rng.integers(0, 300))),
                f"{rng.random():.3f}", f"{rng.random():.3f}", f"{rng.random():.3f}", f"{rng.random():.3f}",
            ]))
    path.write_text("\n".join(lines) + "\n")


def test_cli_trains_and_writes_report(tmp_path):
    csv_path = tmp_path / "charts.csv"
    report_path = tmp_path / "report.json"
    model_path = tmp_path / "model.pth"
    write_chart_csv(csv_path)

    exit_code = main([str(csv_path), "--epochs", "2", "--batch-size", "4", "--window-size", "5",
                      "--device", "cpu", "--output", str(report_path), "--save-model", str(model_path)])

    assert exit_code == 0
    report = json.loads(report_path.read_text())
    assert {t["track_name"] for t in report["track_accuracies"]} == {"Song 0, Live", "Song 1, Live", "Song 2, Live"}
    assert len(report["feature_importance"]) == 3
    assert model_path.exists()


def test_cli_reports_unusable_input(tmp_path):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text("foo,bar\n1,2\n")
    assert main([str(csv_path), "--device", "cpu"]) == 1
