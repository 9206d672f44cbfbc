"""Tests for artifact graph projections."""

from mvp_builder.domain.models.artifacts import (
    ExistingSolutionsArtifact,
    Feature,
    MarketFindings,
    MarketResearchArtifact,
    PrioritizationArtifact,
    ProblemStatementArtifact,
    ProductRequirementsArtifact,
    Requirement,
    RootCauseArtifact,
    Solution,
    UseCaseArtifact,
    UseCaseStep,
    WhyLevel,
)
from mvp_builder.services.visualization import (
    graph_stages,
    market_research_graph,
    prioritization_graph,
    project_stage,
    requirements_graph,
    root_cause_graph,
    solutions_graph,
    truncate,
    use_case_graph,
)
from mvp_builder.stages.catalog import Stage


def edge_pairs(graph):
    return [(e.source, e.target) for e in graph.edges]


def test_truncate():
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate(None, 3) == ""


def test_every_edge_references_existing_nodes():
    """Projections never produce dangling edges."""
    graphs = [
        market_research_graph(
            MarketResearchArtifact(findings=MarketFindings(competitors=["A"], trends=["T"]))
        ),
        root_cause_graph(RootCauseArtifact(causes=[WhyLevel(level=1)], primary_cause="c")),
        solutions_graph(
            ExistingSolutionsArtifact(
                solutions=[Solution(name="S", pros=["p"], cons=["c"])], gaps=["g"]
            )
        ),
        use_case_graph(UseCaseArtifact(steps=[UseCaseStep(step=1, action="a", outcome="o")])),
        requirements_graph(
            ProductRequirementsArtifact(functional_requirements=[Requirement(name="r")])
        ),
        prioritization_graph(PrioritizationArtifact(features=[Feature(name="f")])),
    ]
    for graph in graphs:
        ids = {n.id for n in graph.nodes}
        assert len(ids) == len(graph.nodes)
        for source, target in edge_pairs(graph):
            assert source in ids and target in ids


def test_market_research_graph():
    graph = market_research_graph(
        MarketResearchArtifact(
            findings=MarketFindings(
                market_size="$2B", competitors=["A", "B"], trends=["Remote work"], confidence=0.75
            )
        )
    )

    types = [n.type for n in graph.nodes]
    assert types.count("competitor") == 2
    assert types.count("trend") == 1
    assert any(n.label == "Confidence: 75%" for n in graph.nodes)


def test_root_cause_graph_is_a_chain():
    graph = root_cause_graph(
        RootCauseArtifact(
            causes=[
                WhyLevel(level=2, answer="Second"),
                WhyLevel(level=1, answer="First"),
            ],
            primary_cause="Manual invoicing",
        ),
        problem="Late payments",
    )

    assert edge_pairs(graph) == [
        ("problem", "why-1"),
        ("why-1", "why-2"),
        ("why-2", "root"),
    ]
    assert graph.nodes[0].label == "Late payments"


def test_use_case_graph():
    graph = use_case_graph(
        UseCaseArtifact(
            steps=[
                UseCaseStep(step=1, action="Upload invoice", outcome="Invoice parsed"),
                UseCaseStep(step=2, action="Send reminder", outcome="Client pays"),
            ]
        )
    )

    assert ("start", "step-0") in edge_pairs(graph)
    assert ("step-0", "step-1") in edge_pairs(graph)
    assert ("step-1", "end") in edge_pairs(graph)
    assert ("step-1", "outcome-1") in edge_pairs(graph)


def test_requirements_graph_skips_empty_groups():
    graph = requirements_graph(
        ProductRequirementsArtifact(
            functional_requirements=[Requirement(id="FR-1", name="Reminders")]
        )
    )

    ids = {n.id for n in graph.nodes}
    assert "functional" in ids
    assert "non-functional" not in ids
    assert any(n.label == "FR-1 Reminders" for n in graph.nodes)


def test_prioritization_graph_limits():
    """At most eight features, metric breakdown only for the top three."""
    features = [
        Feature(name=f"F{i}", reach=1, impact=1, confidence=1, effort=1, score=float(i))
        for i in range(10)
    ]

    graph = prioritization_graph(PrioritizationArtifact(method="RICE", features=features))

    feature_nodes = [n for n in graph.nodes if n.type == "feature"]
    metric_nodes = [n for n in graph.nodes if n.type == "metric"]
    assert len(feature_nodes) == 8
    assert feature_nodes[0].label == "#1 F9"
    assert len(metric_nodes) == 3 * 4


def test_project_stage():
    assert Stage.PROBLEM_DISCOVERY not in graph_stages()
    assert project_stage(Stage.PROBLEM_DISCOVERY, ProblemStatementArtifact()) is None

    graph = project_stage(
        Stage.ROOT_CAUSE_ANALYSIS, RootCauseArtifact(primary_cause="c"), problem="p"
    )

    assert graph.nodes[0].label == "p"
