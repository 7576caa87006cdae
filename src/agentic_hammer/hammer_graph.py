"""LangGraph wrapper for the hammer loop - trace harness only.

This wraps the HammerController transitions in a LangGraph StateGraph so
that every verification and corrective run is visible as a node in
LangGraph Studio.

NO new orchestration logic. Every node delegates to the controller, which
decides the next state exactly as HammerController.run_loop() does.
"""

from typing import Any, Optional
from typing_extensions import TypedDict

from langgraph.graph import StateGraph, END

from agentic_hammer.hammer import HammerController, HammerState, LoopOutcome


class HammerGraphState(TypedDict):
    """State for the hammer graph."""
    phase: str
    reason: Optional[str]
    verification_runs: int
    corrective_runs: int
    # Controller reference (passed through state)
    controller: Any
    model: Optional[str]
    base_url: Optional[str]


def controller_to_dict(controller: HammerController, state: HammerGraphState) -> dict:
    """Snapshot the controller into graph state."""
    ls = controller.loop_state
    outcome = controller.outcome
    if ls is not None:
        verification_runs, corrective_runs = ls.verification_runs, ls.corrective_runs
    elif outcome is not None:
        verification_runs, corrective_runs = outcome.verification_runs, outcome.corrective_runs
    else:
        verification_runs, corrective_runs = 0, 0

    return {
        **state,
        "phase": controller.state.value,
        "reason": outcome.reason.value if outcome is not None else None,
        "verification_runs": verification_runs,
        "corrective_runs": corrective_runs,
    }


# --- Graph Nodes ---

async def node_start(state: HammerGraphState) -> HammerGraphState:
    """Reset the budget and locate the verification script."""
    controller = state["controller"]
    controller.begin(model=state.get("model"), base_url=state.get("base_url"))
    return controller_to_dict(controller, state)


async def node_verify(state: HammerGraphState) -> HammerGraphState:
    """Run the verification script."""
    controller = state["controller"]
    await controller.step()
    return controller_to_dict(controller, state)


async def node_correct(state: HammerGraphState) -> HammerGraphState:
    """Run the corrective command and reload the file."""
    controller = state["controller"]
    await controller.step()
    return controller_to_dict(controller, state)


# --- Conditional Edges ---

def next_node(state: HammerGraphState) -> str:
    """Route on the controller's state after each node."""
    if state["phase"] == HammerState.VERIFYING.value:
        return "verify"
    if state["phase"] == HammerState.CORRECTING.value:
        return "correct"
    return "end"


# --- Graph Builder ---

def build_hammer_graph() -> StateGraph:
    """
    Build the hammer graph.

    Flow:
        start -> (script found?) -> verify -> (exit 0 / budget spent?) -> end
                                          -> (failed) -> correct -> verify
    """
    graph = StateGraph(HammerGraphState)

    graph.add_node("start", node_start)
    graph.add_node("verify", node_verify)
    graph.add_node("correct", node_correct)

    graph.set_entry_point("start")

    graph.add_conditional_edges("start", next_node, {"verify": "verify", "end": END})
    graph.add_conditional_edges(
        "verify",
        next_node,
        {
            "verify": "verify",
            "correct": "correct",
            "end": END,
        }
    )
    graph.add_conditional_edges("correct", next_node, {"verify": "verify", "end": END})

    return graph


def recursion_limit_for(budget: int) -> int:
    """Node visits needed for a full loop: start, then verify+correct per attempt."""
    return 2 * budget + 10


async def run_hammer_graph(
    controller: HammerController,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
) -> LoopOutcome:
    """
    Run the hammer graph and return the loop outcome.

    This is the traced equivalent of HammerController.run_loop().
    """
    compiled = build_hammer_graph().compile()

    initial_state: HammerGraphState = {
        "phase": HammerState.IDLE.value,
        "reason": None,
        "verification_runs": 0,
        "corrective_runs": 0,
        "controller": controller,
        "model": model,
        "base_url": base_url,
    }

    await compiled.ainvoke(
        initial_state,
        config={"recursion_limit": recursion_limit_for(controller.config.hammer_budget)},
    )

    return controller.outcome


# Pre-compiled graph for Studio discovery
hammer_graph = build_hammer_graph().compile()
