"""
Audit Document Renderer

Renders AuditReportData to deterministic UTF-8 plain text.
No runtime randomness. Same data → same bytes → same SHA-256.

The closure pipeline treats the renderer as opaque: any object with
render(data) -> bytes and a content_type/extension pair can replace it.
"""

from datetime import datetime
from hashlib import sha256
from typing import List, Optional

from app.models.closure import ActivitySummary, AuditReportData, ReceiptSummary
from app.models.db_models import ClosureType
from .scoring import score_label


PLATFORM_NAME = "DONA TUTTI"

CLOSURE_TYPE_LABELS = {
    ClosureType.GOAL_REACHED: "Meta alcanzada",
    ClosureType.END_DATE: "Fecha de finalizacion",
    ClosureType.MANUAL: "Cierre manual",
}

# (label, attribute, maximum points)
SCORE_ROWS = (
    ("Documentacion de gastos", "documentation_score", 30),
    ("Registro de actividades", "activity_score", 25),
    ("Progreso hacia la meta", "goal_progress_score", 20),
    ("Frecuencia de actualizaciones", "timeliness_score", 15),
    ("Deduccion por alertas", "alerts_deduction_score", 0),
    ("Bonificaciones", "bonus_score", 10),
)

LINE_WIDTH = 72


def content_hash(content: bytes) -> str:
    """SHA-256 hex digest of raw document bytes."""
    return sha256(content).hexdigest()


def _date(value: Optional[datetime], fmt: str = "%d/%m/%Y") -> str:
    return value.strftime(fmt) if value else "-"


def _section(lines: List[str], title: str) -> None:
    lines.append("")
    lines.append(f"=== {title} ===")
    lines.append("")


def _progress_bar(percentage: float, width: int = 40) -> str:
    filled = int(round(min(max(percentage, 0.0), 100.0) / 100.0 * width))
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def _receipts_table(receipts: List[ReceiptSummary]) -> List[str]:
    rows = [f"{'Proveedor':<20} {'Concepto':<24} {'Monto':>12} {'Doc':>4}"]
    for r in receipts:
        rows.append(
            f"{r.provider[:20]:<20} {r.name[:24]:<24} {r.total:>12.2f} {'Si' if r.has_document else 'No':>4}"
        )
    return rows


def _activities_table(activities: List[ActivitySummary]) -> List[str]:
    rows = [f"{'Fecha':<12} {'Tipo':<16} Titulo"]
    for a in activities:
        rows.append(f"{_date(a.date):<12} {a.type[:16]:<16} {a.title}")
    return rows


class AuditReportRenderer:
    """Plain-text audit report renderer."""

    content_type = "text/plain; charset=utf-8"
    extension = "txt"

    def render_text(self, data: AuditReportData) -> str:
        lines: List[str] = [
            PLATFORM_NAME.center(LINE_WIDTH).rstrip(),
            "REPORTE DE AUDITORIA DE CAMPANA".center(LINE_WIDTH).rstrip(),
        ]

        _section(lines, "INFORMACION DE LA CAMPANA")
        lines.append(f"Titulo: {data.campaign_title}")
        lines.append(f"Organizador: {data.organizer_name}")
        lines.append(f"Fecha de inicio: {_date(data.start_date)}")
        lines.append(f"Fecha de fin: {_date(data.end_date)}")
        lines.append(f"Fecha de cierre: {_date(data.closed_at, '%d/%m/%Y %H:%M')}")
        lines.append(f"Tipo de cierre: {CLOSURE_TYPE_LABELS.get(data.closure_type, data.closure_type.value)}")
        if data.closure_reason:
            lines.append(f"Justificacion: {data.closure_reason}")

        _section(lines, "RESUMEN FINANCIERO")
        lines.append(f"Progreso: {data.goal_percentage:.1f}% de la meta alcanzada")
        lines.append(_progress_bar(data.goal_percentage))
        lines.append(f"Meta de recaudacion: ${data.campaign_goal:.2f}")
        lines.append(f"Total recaudado: ${data.total_raised:.2f}")
        lines.append(f"Total donantes: {data.total_donors}")
        lines.append(f"Total donaciones: {data.total_donations}")

        _section(lines, "DETALLE DE GASTOS")
        lines.append(f"Total gastos documentados: ${data.total_expenses:.2f}")
        lines.append(f"Comprobantes: {data.total_receipts}")
        if data.total_receipts > 0:
            doc_percentage = data.receipts_with_documents / data.total_receipts * 100
            lines.append(
                f"Comprobantes con documento adjunto: {data.receipts_with_documents} ({doc_percentage:.1f}%)"
            )
        if data.receipts:
            lines.append("")
            lines.extend(_receipts_table(data.receipts))

        _section(lines, "ACTIVIDADES REGISTRADAS")
        lines.append(f"Total actividades: {data.total_activities}")
        if data.activities:
            lines.append("")
            lines.extend(_activities_table(data.activities))

        _section(lines, "PUNTUACION DE TRANSPARENCIA")
        lines.append(f"Puntuacion: {data.transparency_score:.0f} - {score_label(data.transparency_score)}")
        lines.append("")
        lines.append(f"{'Criterio':<40} {'Puntos':>8} {'Maximo':>8}")
        for label, attribute, maximum in SCORE_ROWS:
            points = getattr(data.transparency_breakdown, attribute)
            lines.append(f"{label:<40} {points:>8.1f} {maximum:>8}")
        lines.append(f"{'TOTAL':<40} {data.transparency_score:>8.1f} {100:>8}")

        lines.append("")
        lines.append(f"Este documento fue generado automaticamente por {PLATFORM_NAME.title()}")
        lines.append(f"Fecha de generacion: {_date(data.closed_at, '%d/%m/%Y %H:%M:%S')}")
        lines.append(f"ID de Campana: {data.campaign_id}")

        return "\n".join(lines) + "\n"

    def render(self, data: AuditReportData) -> bytes:
        return self.render_text(data).encode("utf-8")
