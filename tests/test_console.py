import json

from company_import.console import main


def test_console_import_and_status(tmp_path, capsys):
    path = tmp_path / "console-job.json"
    path.write_text(json.dumps([{"companyId": "k-1", "name": "Console AB"}]), encoding="utf-8")

    assert main(["import", str(path)]) == 0
    assert main(["status", "console-job"]) == 0
    assert main(["jobs", "--limit", "5"]) == 0

    output = capsys.readouterr().out
    assert "console-job" in output
    assert "completed" in output


def test_console_status_unknown_import(capsys):
    assert main(["status", "missing"]) == 1
    assert "Import job not found." in capsys.readouterr().out
