"""Node/edge projections of stage artifacts for graph widgets.

Pure functions: each takes an artifact and returns a Graph of labelled nodes
and edges. No layout or styling happens here; the UI decides how to draw the
``type`` of each node.
"""

from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from mvp_builder.domain.models.artifacts import (
    ExistingSolutionsArtifact,
    MarketResearchArtifact,
    PrioritizationArtifact,
    PrioritizationMethod,
    ProductRequirementsArtifact,
    RootCauseArtifact,
    UseCaseArtifact,
)
from mvp_builder.stages.catalog import Stage

MAX_PRIORITIZED_FEATURES = 8
MAX_FEATURE_BREAKDOWNS = 3


class GraphNode(BaseModel):
    id: str
    label: str
    type: str


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    label: str = ""


class Graph(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def add_node(self, id: str, label: str, type: str) -> str:
        self.nodes.append(GraphNode(id=id, label=label, type=type))
        return id

    def add_edge(self, source: str, target: str, label: str = "") -> None:
        self.edges.append(
            GraphEdge(id=f"{source}-{target}", source=source, target=target, label=label)
        )


def truncate(text: str, limit: int) -> str:
    """Cut `text` to `limit` characters, marking the cut with '...'."""
    text = text or ""
    return text[:limit] + ("..." if len(text) > limit else "")


def market_research_graph(artifact: MarketResearchArtifact) -> Graph:
    findings = artifact.findings
    graph = Graph()
    hub = graph.add_node("market", truncate(findings.market_size or "Market", 80), "market")

    for i, competitor in enumerate(findings.competitors):
        node = graph.add_node(f"competitor-{i}", truncate(competitor, 50), "competitor")
        graph.add_edge(hub, node, "Competitor")

    for i, trend in enumerate(findings.trends):
        node = graph.add_node(f"trend-{i}", truncate(trend, 60), "trend")
        graph.add_edge(hub, node, "Trend")

    node = graph.add_node(
        "confidence", f"Confidence: {round(findings.confidence * 100)}%", "confidence"
    )
    graph.add_edge(hub, node, "Analysis")
    return graph


def root_cause_graph(artifact: RootCauseArtifact, problem: str = "") -> Graph:
    """Problem -> why 1 -> ... -> why N -> primary root cause."""
    graph = Graph()
    previous = graph.add_node("problem", truncate(problem or "Problem", 60), "symptom")

    for cause in sorted(artifact.causes, key=lambda c: c.level):
        node = graph.add_node(
            f"why-{cause.level}", truncate(cause.answer or cause.question, 60), "why"
        )
        graph.add_edge(previous, node, f"Why {cause.level}?")
        previous = node

    if artifact.primary_cause:
        root = graph.add_node("root", truncate(artifact.primary_cause, 80), "root")
        graph.add_edge(previous, root, "Root cause")
    return graph


def solutions_graph(artifact: ExistingSolutionsArtifact) -> Graph:
    graph = Graph()
    hub = graph.add_node("center", "Competitive Landscape", "center")

    for i, solution in enumerate(artifact.solutions):
        node = graph.add_node(f"solution-{i}", solution.name, "solution")
        graph.add_edge(hub, node, "Competitor")
        for j, pro in enumerate(solution.pros[:2]):
            child = graph.add_node(f"solution-{i}-pro-{j}", truncate(pro, 40), "strength")
            graph.add_edge(node, child, "Strength")
        for j, con in enumerate(solution.cons[:2]):
            child = graph.add_node(f"solution-{i}-con-{j}", truncate(con, 40), "weakness")
            graph.add_edge(node, child, "Weakness")

    for i, gap in enumerate(artifact.gaps):
        node = graph.add_node(f"gap-{i}", truncate(gap, 50), "gap")
        graph.add_edge(hub, node, "Gap")
    return graph


def use_case_graph(artifact: UseCaseArtifact) -> Graph:
    """Start -> step 1 -> step 2 ... with each step's outcome hanging off it."""
    graph = Graph()
    previous = graph.add_node("start", "Customer Journey Start", "start")

    for index, step in enumerate(artifact.steps):
        step_id = graph.add_node(
            f"step-{index}", f"Step {step.step}: {truncate(step.action, 40)}", "step"
        )
        outcome_id = graph.add_node(f"outcome-{index}", truncate(step.outcome, 50), "outcome")
        graph.add_edge(previous, step_id, "Begin" if index == 0 else "Next")
        graph.add_edge(step_id, outcome_id, "Result")
        previous = step_id

    end = graph.add_node("end", "Journey Complete", "end")
    graph.add_edge(previous, end, "Finish")
    return graph


def requirements_graph(artifact: ProductRequirementsArtifact) -> Graph:
    graph = Graph()
    hub = graph.add_node("center", "Product Requirements", "center")
    groups = (
        ("functional", "Functional", artifact.functional_requirements),
        ("non-functional", "Non-functional", artifact.non_functional_requirements),
    )
    for group_id, group_label, requirements in groups:
        if not requirements:
            continue
        group = graph.add_node(group_id, group_label, "group")
        graph.add_edge(hub, group)
        for i, requirement in enumerate(requirements):
            label = requirement.name if not requirement.id else f"{requirement.id} {requirement.name}"
            node = graph.add_node(f"{group_id}-{i}", truncate(label, 45), "requirement")
            graph.add_edge(group, node, requirement.category)
    return graph


def prioritization_graph(artifact: PrioritizationArtifact) -> Graph:
    """Top features by score around a hub; metric breakdown for the top three."""
    graph = Graph()
    hub = graph.add_node("center", f"{artifact.method.value} Prioritization", "center")

    ranked = sorted(artifact.features, key=lambda f: f.score or 0.0, reverse=True)
    for index, feature in enumerate(ranked[:MAX_PRIORITIZED_FEATURES]):
        node = graph.add_node(f"feature-{index}", f"#{index + 1} {feature.name}", "feature")
        if feature.score is not None:
            edge_label = f"Score: {feature.score:.1f}"
        else:
            edge_label = feature.priority.value if feature.priority else ""
        graph.add_edge(hub, node, edge_label)

        if index >= MAX_FEATURE_BREAKDOWNS:
            continue
        if artifact.method == PrioritizationMethod.RICE:
            metrics = (
                ("reach", "Reach", feature.reach, "R"),
                ("impact", "Impact", feature.impact, "I"),
                ("confidence", "Confidence", feature.confidence, "C"),
                ("effort", "Effort", feature.effort, "E"),
            )
        elif artifact.method == PrioritizationMethod.ICE:
            metrics = (
                ("impact", "Impact", feature.impact, "I"),
                ("confidence", "Confidence", feature.confidence, "C"),
                ("ease", "Ease", feature.ease, "E"),
            )
        else:
            metrics = ()
        for key, label, value, short in metrics:
            metric = graph.add_node(
                f"{node}-{key}", f"{label}: {value if value is not None else 0:g}", "metric"
            )
            graph.add_edge(node, metric, short)
    return graph


_PROJECTIONS: Dict[Stage, Callable[..., Graph]] = {
    Stage.MARKET_RESEARCH: market_research_graph,
    Stage.ROOT_CAUSE_ANALYSIS: root_cause_graph,
    Stage.EXISTING_SOLUTIONS: solutions_graph,
    Stage.USE_CASE_DEFINITION: use_case_graph,
    Stage.PRODUCT_REQUIREMENTS: requirements_graph,
    Stage.PRIORITIZATION: prioritization_graph,
}


def graph_stages() -> List[Stage]:
    return list(_PROJECTIONS)


def project_stage(stage: Stage, artifact: BaseModel, problem: str = "") -> Optional[Graph]:
    """Graph for `stage`, or None when the stage has no diagram."""
    projection = _PROJECTIONS.get(stage)
    if projection is None:
        return None
    if stage == Stage.ROOT_CAUSE_ANALYSIS:
        return projection(artifact, problem)
    return projection(artifact)
