from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>AncestralAllele Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>AncestralAllele Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Alignment</th><td><code>{{ inputs.alignment }}</code></td></tr>
      <tr><th>Reference genome</th><td><code>{{ inputs.ref_genome }}</code></td></tr>
      <tr><th>Ancestors (in order)</th><td><code>{{ inputs.ancestors | join(", ") }}</code></td></tr>
      <tr><th>Positions</th><td><code>{{ inputs.positions }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Calls</h3>
    <table>
      <tr><th>Positions</th><td>{{ summary.positions }}</td></tr>
      <tr><th>Called (not N)</th><td>{{ summary.called }}</td></tr>
      <tr><th>Ties</th><td>{{ summary.ties }}</td></tr>
      <tr><th>Fallback ancestor used</th><td>{{ summary.fallback_hits }}</td></tr>
      <tr><th>Sequence missing from reference</th><td>{{ summary.missing_sequence }}</td></tr>
    </table>
  </div>
</div>

<h2>Evidence</h2>
<table>
  {% for name, n in summary.evidence.items() %}
  <tr><th>{{ name }}</th><td>{{ n }}</td></tr>
  {% endfor %}
</table>

<h2>Source genome</h2>
<table>
  {% for name, n in summary.used_ancestor.items() %}
  <tr><th>{{ name }}</th><td>{{ n }}</td></tr>
  {% endfor %}
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Evidence categories</h3>
    <img src="{{ plots.evidence_counts }}" alt="evidence categories">
  </div>
  <div class="card">
    <h3>Alleles</h3>
    <img src="{{ plots.allele_counts }}" alt="allele counts">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>{{ inputs.output }}</code> (per-position annotation)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>The first ancestor with any aligned base decides the call; later ancestors are not merged in.</li>
  <li><code>N</code> with a <code>Tie</code> tag means the evidence was split evenly, not that it was absent.</li>
  <li>WithinSpecies calls come from paralogous copies in the reference genome and are the weakest evidence.</li>
</ul>

<hr>
<p class="small">AncestralAllele {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    inputs: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        summary=summary,
        inputs=inputs,
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
