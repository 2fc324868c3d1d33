"""HTML report generator — produces a self-contained HTML report with reference, rendered and diff images."""

from __future__ import annotations

import base64
import html
import logging
from pathlib import Path

from previewshot.models.test_result import RunResult, TestResult

from .regression_detector import Regression

logger = logging.getLogger(__name__)


def _embed_image(path: str | None) -> str:
    """Read an image file and return a base64 data URI, or empty string when unreadable."""
    if not path:
        return ""
    try:
        p = Path(path)
        if not p.exists() or p.stat().st_size == 0:
            return ""
        with open(p, "rb") as f:
            data = base64.b64encode(f.read()).decode()
    except OSError as e:
        logger.debug("Could not embed %s: %s", path, e)
        return ""
    return f"data:image/png;base64,{data}"


def _image_cell(label: str, path: str | None) -> str:
    data_uri = _embed_image(path)
    if data_uri:
        body = f'<img src="{data_uri}" alt="{html.escape(label)}" loading="lazy" onclick="this.classList.toggle(\'zoomed\')"/>'
    else:
        body = '<div class="missing-image">not available</div>'
    return f'''
        <div class="screenshot-item">
          {body}
          <div class="screenshot-label">{html.escape(label)}</div>
        </div>'''


def _build_test_card(r: TestResult) -> str:
    """Build an HTML card for a single screenshot result."""
    border_color = {"pass": "#22c55e", "fail": "#ef4444", "skip": "#eab308", "error": "#f97316"}.get(r.result, "#94a3b8")
    diff = f" &middot; diff {r.diff_percent * 100:.2f}%" if r.diff_percent is not None else ""

    card = f'''
    <div class="test-card" id="test-{html.escape(r.test_id)}">
      <div class="test-header" style="border-left: 4px solid {border_color};" onclick="this.parentElement.classList.toggle('expanded')">
        <div class="test-header-left">
          <span class="badge {r.result}">{r.result.upper()}</span>
          <strong>{html.escape(r.test_name)}</strong>
          <span class="test-meta">{html.escape(r.class_name)} &middot; {r.duration_seconds:.2f}s{diff}</span>
        </div>
        <span class="expand-arrow">&#9660;</span>
      </div>
      <div class="test-body">
    '''

    if r.preview_name:
        card += f'<div class="test-description">{html.escape(r.preview_name)}</div>'

    if r.failure_reason:
        card += f'<div class="failure-banner"><pre>{html.escape(r.failure_reason)}</pre></div>'

    card += '<div class="section"><h4>Images</h4><div class="screenshots-grid">'
    card += _image_cell("Reference", r.ref_image_path)
    card += _image_cell("Rendered", r.new_image_path)
    if r.diff_image_path:
        card += _image_cell("Diff", r.diff_image_path)
    card += '</div></div>'

    if r.report_entries:
        card += '<div class="section"><h4>Report Entries</h4><pre class="console-log">'
        for entry in r.report_entries:
            for key, value in entry.values.items():
                card += html.escape(f"{entry.timestamp} {key}={value}") + "\n"
        card += '</pre></div>'

    card += '</div></div>'  # close test-body and test-card
    return card


def generate_html_report(
    run_result: RunResult,
    regressions: list[Regression],
    output_path: Path,
) -> None:
    """Generate a self-contained HTML report with one card per screenshot."""

    summary_section = ""
    if run_result.summary:
        summary_section = f'<div class="run-summary"><div class="summary-content">{html.escape(run_result.summary)}</div></div>'

    engine_section = ""
    if run_result.engine_error:
        engine_section = f'<div class="failure-banner"><strong>Engine error:</strong> {html.escape(run_result.engine_error)}</div>'

    reg_section = ""
    if regressions:
        items = ""
        for r in regressions:
            reason = f" &mdash; {html.escape(r.failure_reason)}" if r.failure_reason else ""
            items += f"<li><strong>{html.escape(r.test_name)}</strong>: {r.previous_result} &rarr; {r.current_result}{reason}</li>"
        reg_section = f'<div class="regressions"><h2>&#9888; Regressions ({len(regressions)})</h2><ul>{items}</ul></div>'

    test_cards = [_build_test_card(r) for r in run_result.test_results]
    mode = "Recording" if run_result.recording_mode else "Validation"

    report_html = f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Screenshot Report &mdash; {html.escape(run_result.run_id)}</title>
<style>
  :root {{ --pass: #22c55e; --fail: #ef4444; --skip: #eab308; --error: #f97316; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; --accent: #6366f1; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1400px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  .meta {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 0.8rem; margin-bottom: 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.pass .value {{ color: var(--pass); }}
  .stat.fail .value {{ color: var(--fail); }}
  .stat.skip .value {{ color: var(--skip); }}
  .stat.error .value {{ color: var(--error); }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; white-space: nowrap; }}
  .badge.pass {{ background: #dcfce7; color: #166534; }}
  .badge.fail {{ background: #fecaca; color: #991b1b; }}
  .badge.skip {{ background: #fef9c3; color: #854d0e; }}
  .badge.error {{ background: #fed7aa; color: #9a3412; }}
  .run-summary {{ background: var(--card); border-radius: 8px; padding: 1.2rem; margin-bottom: 1.5rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); border-left: 4px solid var(--accent); }}
  .summary-content {{ font-size: 0.9rem; line-height: 1.7; }}
  .regressions {{ background: #fef2f2; border-radius: 8px; padding: 1.2rem; margin-bottom: 1.5rem; border-left: 4px solid var(--fail); }}
  .regressions h2 {{ color: var(--fail); font-size: 1rem; margin-bottom: 0.4rem; }}
  .regressions ul {{ margin-left: 1.2rem; font-size: 0.9rem; }}
  .test-card {{ background: var(--card); border-radius: 8px; margin-bottom: 0.6rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); overflow: hidden; }}
  .test-header {{ display: flex; justify-content: space-between; align-items: center; padding: 0.7rem 1rem; cursor: pointer; user-select: none; }}
  .test-header:hover {{ background: #f8fafc; }}
  .test-header-left {{ display: flex; align-items: center; gap: 0.5rem; flex-wrap: wrap; }}
  .test-meta {{ font-size: 0.78rem; color: var(--muted); }}
  .expand-arrow {{ color: var(--muted); font-size: 0.7rem; transition: transform 0.2s; }}
  .test-card.expanded .expand-arrow {{ transform: rotate(180deg); }}
  .test-body {{ display: none; padding: 0 1rem 1rem 1rem; }}
  .test-card.expanded .test-body {{ display: block; }}
  .test-description {{ color: var(--muted); font-size: 0.88rem; margin-bottom: 0.8rem; padding: 0.5rem; background: #f1f5f9; border-radius: 4px; }}
  .failure-banner {{ background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; border-radius: 6px; padding: 0.6rem 0.8rem; margin-bottom: 0.8rem; font-size: 0.88rem; }}
  .failure-banner pre {{ white-space: pre-wrap; font-size: 0.82rem; }}
  .section {{ margin-bottom: 1rem; }}
  .section h4 {{ font-size: 0.85rem; color: var(--muted); text-transform: uppercase; letter-spacing: 0.05em; margin-bottom: 0.4rem; padding-bottom: 0.25rem; border-bottom: 1px solid var(--border); }}
  .screenshots-grid {{ display: grid; grid-template-columns: repeat(3, minmax(200px, 1fr)); gap: 0.6rem; }}
  .screenshot-item {{ text-align: center; }}
  .screenshot-item img {{ max-width: 100%; border-radius: 6px; border: 1px solid var(--border); cursor: pointer; background: repeating-conic-gradient(#eee 0% 25%, white 0% 50%) 50% / 16px 16px; }}
  .screenshot-item img.zoomed {{ position: fixed; top: 5%; left: 5%; width: 90%; height: 90%; object-fit: contain; z-index: 1000; background: rgba(0,0,0,0.85); border: none; border-radius: 8px; padding: 1rem; }}
  .missing-image {{ padding: 2rem 0; color: var(--muted); border: 1px dashed var(--border); border-radius: 6px; font-size: 0.8rem; }}
  .screenshot-label {{ font-size: 0.75rem; color: var(--muted); margin-top: 0.2rem; }}
  .console-log {{ background: #1e293b; color: #f1f5f9; padding: 0.8rem; border-radius: 6px; font-size: 0.78rem; overflow-x: auto; max-height: 200px; overflow-y: auto; }}
  .filter-bar {{ display: flex; gap: 0.5rem; margin-bottom: 1rem; flex-wrap: wrap; }}
  .filter-btn {{ padding: 0.3rem 0.8rem; border-radius: 6px; border: 1px solid var(--border); background: var(--card); cursor: pointer; font-size: 0.82rem; }}
  .filter-btn.active {{ background: var(--accent); color: white; border-color: var(--accent); }}
</style>
</head>
<body>
<div class="container">
  <h1>Preview Screenshot Report</h1>
  <p class="meta">Run: {html.escape(run_result.run_id)} &middot; Mode: {mode} &middot; {html.escape(run_result.started_at)} &middot; Duration: {run_result.duration_seconds}s</p>

  <div class="summary">
    <div class="stat"><div class="value">{run_result.total_tests}</div><div class="label">Screenshots</div></div>
    <div class="stat pass"><div class="value">{run_result.passed}</div><div class="label">Passed</div></div>
    <div class="stat fail"><div class="value">{run_result.failed}</div><div class="label">Failed</div></div>
    <div class="stat skip"><div class="value">{run_result.skipped}</div><div class="label">Skipped</div></div>
    <div class="stat error"><div class="value">{run_result.errors}</div><div class="label">Errors</div></div>
  </div>

  {engine_section}
  {summary_section}
  {reg_section}

  <div class="filter-bar">
    <button class="filter-btn active" onclick="filterTests('all')">All</button>
    <button class="filter-btn" onclick="filterTests('fail')">Failed</button>
    <button class="filter-btn" onclick="filterTests('error')">Errors</button>
    <button class="filter-btn" onclick="filterTests('pass')">Passed</button>
    <button class="filter-btn" onclick="filterTests('skip')">Skipped</button>
    <button class="filter-btn" onclick="expandAll()">Expand All</button>
    <button class="filter-btn" onclick="collapseAll()">Collapse All</button>
  </div>

  <div id="test-list">
    {"".join(test_cards)}
  </div>
</div>

<script>
function filterTests(status) {{
  document.querySelectorAll('.filter-btn').forEach(b => b.classList.remove('active'));
  event.target.classList.add('active');
  document.querySelectorAll('.test-card').forEach(card => {{
    if (status === 'all') {{ card.style.display = ''; return; }}
    const badge = card.querySelector('.test-header .badge');
    card.style.display = badge && badge.textContent.trim().toLowerCase() === status ? '' : 'none';
  }});
}}
function expandAll() {{
  document.querySelectorAll('.test-card').forEach(c => c.classList.add('expanded'));
}}
function collapseAll() {{
  document.querySelectorAll('.test-card').forEach(c => c.classList.remove('expanded'));
}}
</script>
</body>
</html>'''

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
