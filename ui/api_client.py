# ui/api_client.py
"""API client for communicating with the FastAPI backend.

Synchronous only: Streamlit reruns the script top to bottom on every
interaction, so each call opens a short-lived ``httpx.Client``.

    client = APIClient()
    session = client.create_session()
    run = client.run_stage(session.id, "problem-discovery", {"problem": "..."})
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass

import httpx

# Stage id -> generation endpoint segment
STAGE_ENDPOINTS: Dict[str, str] = {
    "problem-discovery": "problem-analysis",
    "market-research": "market-research",
    "root-cause-analysis": "root-cause",
    "existing-solutions": "existing-solutions",
    "customer-profile": "icp",
    "use-case-definition": "use-case",
    "product-requirements": "requirements",
    "prioritization": "prioritization",
}


@dataclass
class SessionInfo:
    """Summary of a wizard session."""
    id: str
    current_stage: str
    completed_stages: List[str]
    progress: float = 0.0
    created_at: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "SessionInfo":
        return cls(
            id=data["session_id"],
            current_stage=data["current_stage"],
            completed_stages=list(data.get("completed_stages", [])),
            progress=data.get("progress", 0.0),
            created_at=data.get("created_at"),
        )


class APIClient:
    """HTTP client for the MVP Builder API.

    Args:
        base_url: Server URL without the /api prefix (default: http://localhost:8000)
        timeout: Request timeout in seconds; stage generation waits on the model
            so the default is generous (default: 90.0)
    """

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 90.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api"

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        with self._get_client() as client:
            response = client.request(method, f"{self.api_url}{path}", **kwargs)
            response.raise_for_status()
            return response.json()

    # ============ SESSIONS ============

    def create_session(self, session_id: Optional[str] = None) -> SessionInfo:
        """Create a session (or resume one when `session_id` already exists)."""
        body = {"session_id": session_id} if session_id else {}
        return SessionInfo.from_response(self._request("POST", "/sessions", json=body))

    def get_session(self, session_id: str) -> Dict[str, Any]:
        """Full session state, including artifacts and conversation history."""
        return self._request("GET", f"/sessions/{session_id}")

    def list_sessions(self) -> Dict[str, Any]:
        """Dict with 'sessions' list and 'total' count."""
        return self._request("GET", "/sessions")

    def complete_stage(
        self, session_id: str, stage: str, data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sessions/{session_id}/complete",
            json={"stage": stage, "data": data or {}},
        )

    def navigate(self, session_id: str, stage: str) -> Dict[str, Any]:
        return self._request("POST", f"/sessions/{session_id}/navigate", json={"stage": stage})

    def reset(self, session_id: str, stage: str) -> Dict[str, Any]:
        return self._request("POST", f"/sessions/{session_id}/reset", json={"stage": stage})

    # ============ STAGES ============

    def list_stages(self) -> List[Dict[str, Any]]:
        """Stage catalog in wizard order."""
        return self._request("GET", "/stages")

    def run_stage(self, session_id: str, stage: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Submit the founder's input for an AI stage.

        Raises:
            KeyError: stage has no generation endpoint (export, feedback)
            httpx.HTTPStatusError: 400 with error details for invalid input
        """
        segment = STAGE_ENDPOINTS[stage]
        return self._request("POST", f"/sessions/{session_id}/{segment}", json=payload)

    def problem_conversation(
        self, session_id: str, question: str, answer: str, original_problem: str
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sessions/{session_id}/problem-conversation",
            json={
                "question": question,
                "answer": answer,
                "original_problem": original_problem,
            },
        )

    def get_stage_graph(self, session_id: str, stage: str) -> Optional[Dict[str, Any]]:
        """Node/edge projection, or None when the stage has no artifact or diagram."""
        try:
            return self._request("GET", f"/sessions/{session_id}/graphs/{stage}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise

    # ============ EXPORT / FEEDBACK ============

    def export_session(self, session_id: str, format: str = "markdown") -> Dict[str, Any]:
        """Dict with download_url, filename and format."""
        return self._request("POST", f"/sessions/{session_id}/export", json={"format": format})

    def download_export(self, download_url: str) -> bytes:
        with self._get_client() as client:
            response = client.get(f"{self.base_url}{download_url}")
            response.raise_for_status()
            return response.content

    def submit_feedback(self, session_id: str, feedback: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/sessions/{session_id}/feedback", json=feedback)

    # ============ ACCESS ============

    def check_access(self, customer_id: Optional[str], path: str = "/") -> Dict[str, Any]:
        params = {"path": path}
        if customer_id:
            params["customer_id"] = customer_id
        return self._request("GET", "/access", params=params)

    def increment_attempt(self, customer_id: str) -> Dict[str, Any]:
        """Envelope ``{success, message?, data|error}``; a refusal is not an HTTP error."""
        return self._request("POST", f"/customers/{customer_id}/increment-attempt")

    def health(self) -> Dict[str, Any]:
        """Health report; a degraded service answers 503 with the same body."""
        with self._get_client() as client:
            response = client.get(f"{self.api_url}/health")
            return response.json()
