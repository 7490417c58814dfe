import csv
import html
import json
import os
import re
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path


def sanitize_for_filename(text: str) -> str:
    """Sanitize text for use in filenames."""
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "_", text)
    return text.strip("_").lower()[:100]


def tally(results_json: dict) -> dict:
    tests = results_json.get("tests", [])
    counts = {"total": len(tests), "passed": 0, "failed": 0, "skipped": 0}
    for t in tests:
        if t.get("status") in counts:
            counts[t["status"]] += 1
    return counts


def summary_text(results_json: dict) -> str:
    """e.g. '5 passed, 1 failed, 2 skipped'."""
    counts = tally(results_json)
    parts = [f"{counts[k]} {k}" for k in ("passed", "failed", "skipped") if counts[k]]
    return ", ".join(parts) or "no tests"


def write_results_json(results_json: dict, path: Path):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results_json, f, indent=2)


def write_html_report(results_json: dict, html_path: Path):
    counts = tally(results_json)
    report = f"""
<html><head><title>AngelCard E2E Report</title>
<style>
body {{ font-family: Arial, sans-serif; padding: 20px; }}
.summary {{ margin-bottom: 16px; }}
.pass {{ color: #0a7b44; }}
.fail {{ color: #b00020; }}
.skip {{ color: #8a6d00; }}
pre {{ background: #f6f8fa; padding: 12px; border-radius: 6px; overflow: auto; }}
</style>
</head><body>
  <h1>AngelCard E2E Report</h1>
  <div class="summary">
    <strong>Total:</strong> {counts['total']} &nbsp; <strong class="pass">Passed:</strong> {counts['passed']} &nbsp; <strong class="fail">Failed:</strong> {counts['failed']} &nbsp; <strong class="skip">Skipped:</strong> {counts['skipped']}
  </div>
  <hr />
  {''.join(render_test_result(tr, html_path.parent) for tr in results_json.get('tests', []))}
</body></html>
"""
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(report)


def render_test_result(test_result: dict, base_dir: Path | None = None) -> str:
    status = test_result.get("status", "unknown")
    status_class = {"passed": "pass", "skipped": "skip"}.get(status, "fail")
    name = html.escape(test_result.get("name", "Unnamed Test"))
    error = test_result.get("error", "")
    screenshot = test_result.get("screenshot", "")
    if screenshot and base_dir is not None:
        try:
            screenshot = os.path.relpath(screenshot, base_dir)
        except ValueError:
            pass
    img_tag = f"<div><img src=\"{html.escape(screenshot)}\" style=\"max-width: 100%; border: 1px solid #ddd;\" /></div>" if screenshot else ""
    error_block = f"<pre>{html.escape(error)}</pre>" if error else ""
    return f"""
  <section>
    <h3 class="{status_class}">{name} — {status.upper()}</h3>
    <div>Suite: {html.escape(test_result.get('suite', ''))} &nbsp; Attempts: {test_result.get('attempts', 1)} &nbsp; Duration: {test_result.get('duration', 0)}s</div>
    {img_tag}
    {error_block}
  </section>
  <hr />
"""


def write_junit_xml(results_json: dict, xml_path: Path, suite_name: str = "angelcard-e2e"):
    counts = tally(results_json)
    tests = results_json.get("tests", [])
    root = ET.Element("testsuites", name=suite_name, tests=str(counts["total"]),
                      failures=str(counts["failed"]), skipped=str(counts["skipped"]))
    suites: dict[str, ET.Element] = {}
    for t in tests:
        suite = t.get("suite", "default")
        if suite not in suites:
            suites[suite] = ET.SubElement(root, "testsuite", name=suite)
        case = ET.SubElement(suites[suite], "testcase", classname=suite, name=t.get("name", "Unnamed"),
                             time=str(t.get("duration", 0)))
        if t.get("status") == "failed":
            ET.SubElement(case, "failure", message=t.get("error", "")).text = t.get("error", "")
        elif t.get("status") == "skipped":
            ET.SubElement(case, "skipped", message=t.get("error", ""))
    for name, el in suites.items():
        cases = [t for t in tests if t.get("suite", "default") == name]
        el.set("tests", str(len(cases)))
        el.set("failures", str(sum(1 for t in cases if t.get("status") == "failed")))
        el.set("skipped", str(sum(1 for t in cases if t.get("status") == "skipped")))
    ET.ElementTree(root).write(xml_path, encoding="utf-8", xml_declaration=True)


ARCHIVED_ARTIFACTS = ("results.json", "report.html", "junit.xml", "screenshots", "traces")


def archive_run(zip_path: Path, run_dir: Path, include=ARCHIVED_ARTIFACTS):
    """Zip a run's artifacts. Directories keep their layout; absent entries are skipped."""
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in include:
            entry = run_dir / name
            if entry.is_dir():
                for f in sorted(p for p in entry.rglob("*") if p.is_file()):
                    zf.write(f, arcname=f.relative_to(run_dir).as_posix())
            elif entry.is_file():
                zf.write(entry, arcname=name)


def log_to_csv(log_path: Path, timestamp: str, artifacts: dict, summary: str = ""):
    csv_exists = log_path.exists()
    with open(log_path, "a", newline="") as csvfile:
        writer = csv.writer(csvfile)
        if not csv_exists:
            writer.writerow(["Timestamp", "Summary", "Results", "Report", "JUnit", "Archive"])
        writer.writerow([
            timestamp,
            summary,
            str(artifacts.get("results")),
            str(artifacts.get("report")),
            str(artifacts.get("junit")),
            str(artifacts.get("archive")),
        ])


def build_webhook_payload(results_json: dict, build_id: str, run_id: str) -> dict:
    return {"testResults": {"summary": summary_text(results_json)}, "buildId": build_id, "runId": run_id}
