import json

from hospital_revenue.cli import main


def test_split_command(capsys) -> None:
    exit_code = main(["split", "--fee", "OPD=1000", "lab=500", "--percent", "OPD=70", "LAB=60"])
    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Doctor earns    PKR 1,000.00" in out
    assert "Hospital profit PKR 500.00" in out


def test_split_command_clamps_and_reports(capsys) -> None:
    exit_code = main(["split", "--fee", "OPD=100", "LAB=-50", "--percent", "OPD=150", "LAB=50"])
    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Doctor earns    PKR 100.00" in out
    assert "Hospital profit PKR 0.00" in out
    assert "Adjusted lab_fee: negative fee clamped" in out
    assert "Adjusted opd_percentage: percentage above 100 clamped" in out


def test_split_command_rejects_bad_pair(capsys) -> None:
    assert main(["split", "--fee", "OPD"]) == 1


def test_summary_command(tmp_path, capsys, doctor_rows, patient_rows) -> None:
    data = tmp_path / "export.json"
    data.write_text(json.dumps({"doctors": doctor_rows, "patients": patient_rows}), encoding="utf-8")
    html = tmp_path / "out" / "summary.html"
    exit_code = main(["summary", str(data), "--date", "2025-08-10", "--html", str(html)])
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["grand"]["fees"] == "2400.00"
    assert payload["unattributed_fees"] == "300.00"
    assert html.exists()


def test_report_command(tmp_path, capsys, doctor_rows, patient_rows) -> None:
    data = tmp_path / "export.json"
    data.write_text(json.dumps({"doctors": doctor_rows, "patients": patient_rows}), encoding="utf-8")
    html = tmp_path / "report.html"
    exit_code = main(
        [
            "report",
            str(data),
            "--type",
            "revenue-analysis",
            "--start",
            "2025-08-01",
            "--end",
            "2025-08-31",
            "--html",
            str(html),
        ]
    )
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["rows"][0]["Fee Category"] == "OPD"
    assert "Revenue Analysis Report" in html.read_text(encoding="utf-8")


def test_missing_data_file(tmp_path) -> None:
    assert main(["summary", str(tmp_path / "missing.json")]) == 1
