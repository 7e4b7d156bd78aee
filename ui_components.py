"""Reusable UI components for Streamlit HTML snippets."""

from __future__ import annotations

from html import escape


def metric_card(label: str, value: str, subtext: str | None = None) -> str:
    html = (
        '<div class="summary-metric-card">'
        f'<div class="summary-metric-label">{escape(str(label))}</div>'
        f'<div class="summary-metric-value">{escape(str(value))}</div>'
    )
    if subtext:
        html += f'<div class="summary-metric-sub">{escape(str(subtext))}</div>'
    html += "</div>"
    return html


def section_title(text: str, margin_top_px: int = 0) -> str:
    style = f"margin-top:{margin_top_px}px;" if margin_top_px else ""
    return f'<p class="section-title" style="{style}">{escape(str(text))}</p>'


def report_block(text: str) -> str:
    """Fixed-width report inside a scrollable card."""
    return f'<div class="report-card"><pre>{escape(text)}</pre></div>'

