"""
Self-contained HTML analysis report.

Two modes:
    simple - basic playlist insights, no audio features
    full   - everything in simple plus audio feature statistics and
             the feature columns in the track table

"auto" picks full when any row carries audio features, which is the
case for fresh exports unless Spotify denied the audio-features
endpoint, and for uploaded CSVs exported with features.

The document has no external dependencies: bars are plain divs, and
a short inline script sorts the track table on header click and
filters it from the search box.
"""

import html
from datetime import datetime
from typing import Iterable, Sequence

from spot_exporter.export.stats import PlaylistSummary, summarize
from spot_exporter.export.table import TableView
from spot_exporter.spotify.models import ExportRow


REPORT_MODES = ("auto", "simple", "full")

FEATURE_LABELS = {
    "danceability": "Danceability",
    "energy": "Energy",
    "valence": "Valence",
    "acousticness": "Acousticness",
    "instrumentalness": "Instrumentalness",
    "speechiness": "Speechiness",
    "liveness": "Liveness",
    "tempo": "Tempo (BPM)",
}

_STYLE = """
    body {
      font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
      background: #121212;
      color: #ffffff;
      margin: 0;
      padding: 24px;
    }
    h1 { margin: 0 0 4px 0; }
    h2 { border-bottom: 1px solid #333; padding-bottom: 6px; margin-top: 40px; }
    .header { display: flex; gap: 24px; align-items: center; }
    .cover { width: 160px; height: 160px; object-fit: cover; border-radius: 6px; }
    .badge {
      display: inline-block;
      padding: 2px 10px;
      border-radius: 999px;
      background: #1db954;
      color: #000;
      font-size: 11px;
      font-weight: bold;
      text-transform: uppercase;
    }
    .muted { color: #b3b3b3; font-size: 13px; }
    .cards { display: flex; flex-wrap: wrap; gap: 16px; margin-top: 24px; }
    .card { background: #1e1e1e; border-radius: 8px; padding: 16px 20px; min-width: 140px; }
    .card-value { font-size: 26px; font-weight: bold; color: #1db954; }
    .card-label { font-size: 12px; color: #b3b3b3; text-transform: uppercase; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(320px, 1fr)); gap: 24px; }
    .panel { background: #1e1e1e; border-radius: 8px; padding: 16px; }
    .panel h3 { margin-top: 0; font-size: 15px; }
    .bar-row { display: flex; align-items: center; gap: 8px; margin: 4px 0; font-size: 13px; }
    .bar-label { width: 40%; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
    .bar-track { flex: 1; background: #333; border-radius: 3px; height: 10px; }
    .bar-fill { background: #1db954; height: 10px; border-radius: 3px; }
    .bar-count { width: 48px; text-align: right; color: #b3b3b3; }
    ol { margin: 0; padding-left: 20px; font-size: 13px; }
    input#filter {
      width: 100%;
      max-width: 420px;
      padding: 8px;
      margin: 8px 0 12px 0;
      border-radius: 4px;
      border: 1px solid #444;
      background: #1e1e1e;
      color: #fff;
    }
    table { border-collapse: collapse; width: 100%; font-size: 12px; }
    th, td { border: 1px solid #333; padding: 4px 6px; text-align: left; }
    th { background: #1e1e1e; cursor: pointer; position: sticky; top: 0; }
    tr:nth-child(even) td { background: #181818; }
"""

_SCRIPT = """
    (function () {
      var table = document.getElementById("tracks");
      var body = table.tBodies[0];
      var filter = document.getElementById("filter");
      var direction = {};
      filter.addEventListener("input", function () {
        var term = filter.value.toLowerCase();
        Array.prototype.forEach.call(body.rows, function (row) {
          row.style.display = row.textContent.toLowerCase().indexOf(term) === -1 ? "none" : "";
        });
      });
      Array.prototype.forEach.call(table.tHead.rows[0].cells, function (th, index) {
        th.addEventListener("click", function () {
          var descending = direction[index] = !direction[index];
          var rows = Array.prototype.slice.call(body.rows);
          var numeric = rows.every(function (r) {
            var v = r.cells[index].textContent;
            return v === "" || !isNaN(parseFloat(v));
          });
          rows.sort(function (a, b) {
            var x = a.cells[index].textContent, y = b.cells[index].textContent;
            if (x === "" || y === "") { return x === y ? 0 : (x === "" ? 1 : -1); }
            var c = numeric ? parseFloat(x) - parseFloat(y) : x.localeCompare(y, undefined, {sensitivity: "base"});
            return descending ? -c : c;
          });
          rows.forEach(function (r) { body.appendChild(r); });
        });
      });
    })();
"""


def resolve_mode(mode: str, rows: Sequence[ExportRow]) -> str:
    """Turn 'auto' into 'simple' or 'full'."""
    if mode not in REPORT_MODES:
        raise ValueError(f"Unknown report mode '{mode}', expected one of {REPORT_MODES}")
    if mode != "auto":
        return mode
    return "full" if any(not row.features.is_empty for row in rows) else "simple"


def _e(value: object) -> str:
    return html.escape("" if value is None else str(value))


def _bars(title: str, counts: Iterable[tuple[str, float]], number_format: str = "{:g}") -> str:
    counts = list(counts)
    if not counts:
        return f'<div class="panel"><h3>{_e(title)}</h3><p class="muted">No data</p></div>'

    peak = max(value for _, value in counts) or 1
    rows = "\n".join(
        f'<div class="bar-row"><span class="bar-label" title="{_e(label)}">{_e(label)}</span>'
        f'<span class="bar-track"><span class="bar-fill" style="display:block;width:{100 * value / peak:.1f}%">'
        f'</span></span><span class="bar-count">{_e(number_format.format(value))}</span></div>'
        for label, value in counts
    )
    return f'<div class="panel"><h3>{_e(title)}</h3>\n{rows}\n</div>'


def _card(value: object, label: str) -> str:
    return (
        f'<div class="card"><div class="card-value">{_e(value)}</div>'
        f'<div class="card-label">{_e(label)}</div></div>'
    )


def _summary_cards(summary: PlaylistSummary, full: bool) -> str:
    popularity = "-" if summary.average_popularity is None else f"{summary.average_popularity:.0f}"
    cards = [
        _card(summary.track_count, "Total Tracks"),
        _card(summary.unique_artists, "Unique Artists"),
        _card(popularity, "Avg Popularity"),
        _card(f"{summary.total_duration_minutes} min", "Total Duration"),
        _card(summary.explicit_count, "Explicit Tracks"),
    ]
    if full and summary.has_features:
        for name in ("danceability", "energy", "valence"):
            if name in summary.feature_averages:
                cards.append(_card(f"{summary.feature_averages[name] * 100:.1f}%", FEATURE_LABELS[name]))
        if "tempo" in summary.feature_averages:
            cards.append(_card(f"{summary.feature_averages['tempo']:.0f}", "Avg BPM"))
    return '<div class="cards">\n' + "\n".join(cards) + "\n</div>"


def _simple_sections(summary: PlaylistSummary) -> str:
    explicit = [
        ("Explicit", summary.explicit_count),
        ("Clean", summary.track_count - summary.explicit_count),
    ]
    return f"""
  <h2>Top 10 by Song Count</h2>
  <div class="grid">
    {_bars("Top Artists", summary.top_artists)}
    {_bars("Top Albums", summary.top_albums)}
    {_bars("Top Genres", summary.top_genres)}
    {_bars("Top Record Labels", summary.top_labels)}
  </div>

  <h2>Playlist Characteristics</h2>
  <div class="grid">
    {_bars("Popularity Distribution", summary.popularity_buckets.items())}
    {_bars("Explicit Content", explicit)}
  </div>

  <h2>Temporal Analysis</h2>
  <div class="grid">
    {_bars("Release Timeline", summary.release_years.items())}
    {_bars("Average Popularity by Release Year", summary.popularity_by_year.items(), "{:.0f}")}
    {_bars("Tracks Added per Year", summary.added_years.items())}
  </div>
"""


def _feature_sections(summary: PlaylistSummary) -> str:
    averages = [
        (FEATURE_LABELS[name], value)
        for name, value in summary.feature_averages.items()
        if name != "tempo"
    ]
    leaders = "\n".join(
        f'<div class="panel"><h3>{_e(title)}</h3><ol>'
        + "".join(f"<li>{_e(label)} <span class='muted'>({value:g})</span></li>" for label, value in tracks)
        + "</ol></div>"
        for title, tracks in summary.feature_leaders.items()
    )
    return f"""
  <h2>Audio Features</h2>
  <div class="grid">
    {_bars("Average Feature Values", averages, "{:.2f}")}
    {_bars("Tempo Distribution (BPM)", summary.tempo_ranges.items())}
    {_bars("Key Distribution", summary.key_distribution.items())}
    {_bars("Mode", summary.mode_distribution.items())}
  </div>

  <h2>Feature Leaders</h2>
  <div class="grid">
{leaders}
  </div>
"""


def _track_table(view: TableView) -> str:
    head = "".join(f"<th>{_e(column)}</th>" for column in view.header)
    body = "\n".join(
        "<tr>" + "".join(f"<td>{_e(cell)}</td>" for cell in row) + "</tr>"
        for row in view.rows
    )
    return f"""
  <h2>Track Data</h2>
  <input id="filter" type="search" placeholder="Filter tracks..." />
  <table id="tracks">
    <thead><tr>{head}</tr></thead>
    <tbody>
{body}
    </tbody>
  </table>
"""


def render_report(
    playlist_name: str,
    rows: Sequence[ExportRow],
    mode: str = "auto",
    cover_url: str | None = None,
    owner: str | None = None,
    view: TableView | None = None,
) -> str:
    """
    Render the analysis report of a playlist as one HTML document.

    Args:
        playlist_name: Title shown at the top.
        rows: Export rows, live or parsed from a CSV.
        mode: "simple", "full" or "auto".
        cover_url: Cover image URL; only http(s) URLs are embedded.
        owner: Owner id shown under the title.
        view: Pre-sorted/filtered table view; built from rows when None.

    Returns:
        The complete HTML document.
    """
    resolved = resolve_mode(mode, rows)
    full = resolved == "full"
    summary = summarize(rows)
    if view is None:
        view = TableView.from_rows(rows, include_features=full)

    cover = ""
    if cover_url and cover_url.startswith(("http://", "https://")):
        cover = f'<img class="cover" src="{_e(cover_url)}" alt="Playlist cover" />'

    subtitle = f"by {_e(owner)} · " if owner else ""
    generated = datetime.now().strftime("%Y-%m-%d %H:%M")
    badge = "Full" if full else "Simple"

    sections = _simple_sections(summary)
    if full and summary.has_features:
        sections += _feature_sections(summary)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{_e(playlist_name)} - {badge} Analysis</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="header">
    {cover}
    <div>
      <span class="badge">{badge} Analysis</span>
      <h1>{_e(playlist_name)}</h1>
      <div class="muted">{subtitle}generated {generated}</div>
    </div>
  </div>
  {_summary_cards(summary, full)}
{sections}
{_track_table(view)}
  <script>{_SCRIPT}</script>
</body>
</html>
"""
