"""
Export service for turning a finished wizard session into a document.

Supports export to:
- JSON: every stage artifact plus session metadata
- Markdown: human-readable MVP brief, one section per stage

Documents are written to the configured export directory as
``mvp-configuration-<timestamp>.<ext>`` and served back by filename.
"""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

import structlog

from mvp_builder.core.exceptions import ExportError, ValidationError
from mvp_builder.domain.models.artifacts import ExportArtifact
from mvp_builder.domain.models.session import Session
from mvp_builder.stages.catalog import Stage, load_stage_catalog

log = structlog.get_logger(__name__)

EXPORT_FORMATS = {"markdown": "md", "json": "json"}
_SAFE_FILENAME_RE = re.compile(r"^mvp-configuration-\d+\.(md|json)$")


class ExportService:
    """
    Service for exporting session data to documents.

    Usage:
        service = ExportService(Path("data/exports"))
        artifact, path = service.export_session(session, "markdown")
    """

    def __init__(self, export_dir: Path):
        self.export_dir = Path(export_dir)

    def export_session(self, session: Session, format: str) -> Tuple[ExportArtifact, Path]:
        """
        Render and write the export document.

        Args:
            session: Session to export
            format: "markdown" or "json"

        Returns:
            (export artifact to store on the session, path of the written file)

        Raises:
            ValidationError: If format is not supported
        """
        bound_log = log.bind(session_id=session.session_id, format=format)

        # Validate format first before rendering anything
        fmt = format.lower()
        if fmt == "md":
            fmt = "markdown"
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(
                f"Unsupported export format: {format}",
                [f"Format must be one of: {', '.join(EXPORT_FORMATS)}"],
            )

        data = self._collect_session_data(session)
        content = self._export_json(data) if fmt == "json" else self._export_markdown(data)

        exported_at = datetime.now(timezone.utc)
        filename = f"mvp-configuration-{int(exported_at.timestamp() * 1000)}.{EXPORT_FORMATS[fmt]}"
        self.export_dir.mkdir(parents=True, exist_ok=True)
        path = self.export_dir / filename
        path.write_text(content, encoding="utf-8")

        bound_log.info("export_written", filename=filename, output_length=len(content))
        artifact = ExportArtifact(format=fmt, filename=filename, exported_at=exported_at)
        return artifact, path

    def resolve_export(self, filename: str) -> Path:
        """
        Locate a previously exported file.

        Raises:
            ExportError: If the name is not an export filename or the file is gone
        """
        if not _SAFE_FILENAME_RE.match(filename):
            raise ExportError(f"Invalid export filename: {filename}")
        path = self.export_dir / filename
        if not path.is_file():
            raise ExportError(f"Export not found: {filename}")
        return path

    def _collect_session_data(self, session: Session) -> Dict[str, Any]:
        catalog = load_stage_catalog()
        stages = []
        for stage, stage_def in catalog.items():
            if stage in (Stage.EXPORT, Stage.FEEDBACK):
                continue
            artifact = session.data.get(stage_def.artifact_key)
            stages.append(
                {
                    "stage": stage.value,
                    "title": stage_def.title,
                    "completed": session.is_completed(stage),
                    "artifact": artifact.model_dump(mode="json", exclude={"kind"})
                    if artifact is not None
                    else None,
                }
            )
        return {
            "metadata": {
                "session_id": session.session_id,
                "current_stage": session.current_stage.value,
                "completed_stages": [s.value for s in session.completed_stages],
                "created_at": session.created_at.isoformat(),
                "exported_at": datetime.now(timezone.utc).isoformat(),
            },
            "stages": stages,
        }

    def _export_json(self, data: Dict[str, Any]) -> str:
        """Export to JSON format."""
        return json.dumps(data, indent=2, default=str)

    def _export_markdown(self, data: Dict[str, Any]) -> str:
        """Export to human-readable Markdown format."""
        meta = data["metadata"]
        lines: List[str] = [
            "# MVP Configuration",
            "",
            f"**Session ID:** `{meta['session_id']}`",
            f"**Created:** {meta['created_at']}",
            f"**Exported:** {meta['exported_at']}",
            f"**Stages completed:** {len(meta['completed_stages'])}",
            "",
        ]

        for entry in data["stages"]:
            lines.append(f"## {entry['title']}")
            lines.append("")
            artifact = entry["artifact"]
            if not artifact:
                lines.append("_Not completed._")
                lines.append("")
                continue
            renderer = _SECTION_RENDERERS.get(entry["stage"], _render_generic)
            lines.extend(renderer(artifact))
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"


# =============================================================================
# Markdown section renderers
# =============================================================================


def _bullets(items: List[str]) -> List[str]:
    return [f"- {item}" for item in items] if items else ["- (none)"]


def _render_problem(a: Dict[str, Any]) -> List[str]:
    lines = [f"**Problem:** {a.get('refined') or a.get('original')}", ""]
    if a.get("refined") and a.get("original") and a["refined"] != a["original"]:
        lines += [f"_Original:_ {a['original']}", ""]
    if a.get("ai_suggestions"):
        lines += ["**Suggestions**", *_bullets(a["ai_suggestions"])]
    return lines


def _render_market(a: Dict[str, Any]) -> List[str]:
    findings = a.get("findings") or {}
    lines = [
        f"**Market size:** {findings.get('market_size') or 'n/a'}",
        f"**Confidence:** {findings.get('confidence', 0):.0%}",
        "",
        "**Competitors**",
        *_bullets(findings.get("competitors", [])),
        "",
        "**Trends**",
        *_bullets(findings.get("trends", [])),
    ]
    return lines


def _render_root_cause(a: Dict[str, Any]) -> List[str]:
    lines = [f"{c['level']}. **{c['question']}** {c['answer']}" for c in a.get("causes", [])]
    return lines + ["", f"**Primary cause:** {a.get('primary_cause') or 'n/a'}"]


def _render_solutions(a: Dict[str, Any]) -> List[str]:
    lines = []
    for s in a.get("solutions", []):
        lines += [f"### {s['name']}", s.get("description", ""), ""]
        if s.get("pricing"):
            lines.append(f"- Pricing: {s['pricing']}")
        if s.get("target_audience"):
            lines.append(f"- Audience: {s['target_audience']}")
        lines.append("")
    return lines + ["**Market gaps**", *_bullets(a.get("gaps", []))]


def _render_icp(a: Dict[str, Any]) -> List[str]:
    lines = []
    for p in a.get("profiles", []):
        demo = p.get("demographics", {})
        psycho = p.get("psychographics", {})
        lines += [
            f"### {p['name']}",
            p.get("description", ""),
            "",
            f"- Role: {demo.get('job_role') or 'n/a'}; age: {demo.get('age') or 'n/a'}",
            f"- Goals: {', '.join(psycho.get('goals', [])) or 'n/a'}",
            f"- Frustrations: {', '.join(psycho.get('frustrations', [])) or 'n/a'}",
            "",
        ]
    return lines or ["_No profiles._"]


def _render_use_case(a: Dict[str, Any]) -> List[str]:
    lines = [a.get("narrative", ""), ""]
    lines += [f"{s['step']}. {s['action']} → {s['outcome']}" for s in a.get("steps", [])]
    return lines


def _render_requirements(a: Dict[str, Any]) -> List[str]:
    lines = ["**Functional**"]
    lines += [
        f"- {r.get('id') or '-'} {r['name']}: {r.get('description', '')}"
        for r in a.get("functional_requirements", [])
    ] or ["- (none)"]
    lines += ["", "**Non-functional**"]
    lines += [
        f"- {r.get('id') or '-'} {r['name']} ({r.get('category') or 'general'}): "
        f"{r.get('description', '')}"
        for r in a.get("non_functional_requirements", [])
    ] or ["- (none)"]
    return lines


def _render_prioritization(a: Dict[str, Any]) -> List[str]:
    lines = [f"**Method:** {a.get('method')}", "", "| Feature | Score | Priority |", "|---|---|---|"]
    for f in a.get("features", []):
        score = f"{f['score']:.2f}" if f.get("score") is not None else "-"
        lines.append(f"| {f['name']} | {score} | {f.get('priority') or '-'} |")
    return lines


def _render_generic(a: Dict[str, Any]) -> List[str]:
    return ["```json", json.dumps(a, indent=2, default=str), "```"]


_SECTION_RENDERERS = {
    Stage.PROBLEM_DISCOVERY.value: _render_problem,
    Stage.MARKET_RESEARCH.value: _render_market,
    Stage.ROOT_CAUSE_ANALYSIS.value: _render_root_cause,
    Stage.EXISTING_SOLUTIONS.value: _render_solutions,
    Stage.CUSTOMER_PROFILE.value: _render_icp,
    Stage.USE_CASE_DEFINITION.value: _render_use_case,
    Stage.PRODUCT_REQUIREMENTS.value: _render_requirements,
    Stage.PRIORITIZATION.value: _render_prioritization,
}
