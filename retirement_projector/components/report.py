import io
from typing import Dict, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from ..models import ProjectionResult, SimulationInputs, SimulationResult

_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#E6ECE9")),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ]
)


def _flatten_rows(obj, prefix: str = "") -> list:
    rows = []
    if isinstance(obj, dict):
        for k, v in obj.items():
            key = f"{prefix}{k}" if prefix else k
            rows.extend(_flatten_rows(v, f"{key}."))
    elif isinstance(obj, list):
        for i, v in enumerate(obj):
            rows.extend(_flatten_rows(v, f"{prefix}{i}."))
    else:
        rows.append([prefix[:-1], str(obj)])
    return rows


def _table(rows) -> Table:
    table = Table(rows, hAlign="LEFT", repeatRows=1)
    table.setStyle(_TABLE_STYLE)
    return table


def build_pdf(
    inputs: SimulationInputs,
    projection: ProjectionResult,
    simulation: Optional[SimulationResult] = None,
    notes: Optional[Dict[str, str]] = None,
) -> bytes:
    """Create a PDF report with the inputs, the projection and the Monte Carlo summary."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, leftMargin=36, rightMargin=36)
    styles = getSampleStyleSheet()
    story = [Paragraph("Retirement Projection Report", styles["Title"]), Spacer(1, 12)]

    # ---- Input data ----
    story.append(Paragraph("Input Data", styles["Heading2"]))
    story.extend([_table([["Field", "Value"]] + _flatten_rows(inputs.model_dump(mode="json"))), Spacer(1, 12)])

    # ---- Summary ----
    story.append(Paragraph("Summary", styles["Heading2"]))
    summary = [
        ["Metric", "Value"],
        ["Status", projection.status.replace("_", " ")],
        ["Net worth at retirement", f"${projection.projected_net_worth_at_retirement:,.0f}"],
        ["Expected runs out at", str(projection.expected_runs_out_age or "never")],
        ["Pessimistic runs out at", str(projection.pessimistic_runs_out_age or "never")],
    ]
    if simulation is not None:
        summary += [
            ["Success rate", f"{simulation.success_rate * 100:.1f}%"],
            ["Paths", f"{simulation.iterations:,}"],
            ["Median ending balance (successful paths)", f"${simulation.success.median_ending_balance:,.0f}"],
            ["Worst case years funded", str(simulation.failure.worst_case)],
        ]
    story.extend([_table(summary), Spacer(1, 12)])

    for title, text in (notes or {}).items():
        story.extend([Paragraph(title, styles["Heading3"]), Paragraph(text, styles["BodyText"]), Spacer(1, 6)])

    # ---- Year by year ----
    story.extend([PageBreak(), Paragraph("Year by Year (Expected)", styles["Heading2"])])
    rows = [["Age", "Start", "Income", "Withdrawal", "Return", "End"]]
    for y in projection.years:
        rows.append([
            str(y.age),
            f"${y.start_balance:,.0f}",
            f"${y.income:,.0f}",
            f"${y.withdrawal:,.0f}",
            f"${y.investment_return_amount:,.0f}",
            f"${y.end_balance:,.0f}",
        ])
    story.append(_table(rows))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
