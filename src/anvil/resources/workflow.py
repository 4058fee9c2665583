"""
Workflows (welds) and their submissions.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..client import Client
from ..errors import NotFoundError
from .base import Identifiable, Mutable, Reloadable, Resource, parse_timestamp

logger = logging.getLogger(__name__)


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


CREATE_WORKFLOW_MUTATION = """
mutation CreateWeld($input: JSON) {
  createWeld(variables: $input) {
    eid
    name
    status
    forges
    casts
    steps
    createdAt
  }
}
"""

FIND_WORKFLOW_QUERY = """
query GetWeld($eid: String!) {
  weld(eid: $eid) {
    eid
    name
    status
    forges
    casts
    steps
    createdAt
    updatedAt
  }
}
"""

START_WORKFLOW_MUTATION = """
mutation StartWeld($input: JSON) {
  startWeld(variables: $input) {
    eid
    weldEid
    status
    currentStep
    completedSteps
    data
    createdAt
  }
}
"""

WORKFLOW_SUBMISSIONS_QUERY = """
query WeldSubmissions($weldEid: String!, $status: String, $limit: Int) {
  weldSubmissions(weldEid: $weldEid, status: $status, limit: $limit) {
    eid
    weldEid
    status
    currentStep
    completedSteps
    data
    createdAt
    updatedAt
  }
}
"""

CONTINUE_WORKFLOW_MUTATION = """
mutation ContinueWeld($eid: String!, $stepId: String!, $data: JSON) {
  continueWeld(eid: $eid, stepId: $stepId, data: $data) {
    eid
    weldEid
    status
    currentStep
    completedSteps
    data
    updatedAt
  }
}
"""


class Workflow(Identifiable, Reloadable, Mutable, Resource):
    """A multi-step process chaining webforms (forges) and PDF templates (casts)."""

    FIELDS = ("eid", "id", "name", "status", "steps", "forges", "casts", "created_at", "updated_at")

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @property
    def status(self) -> Optional[str]:
        return self.get("status")

    def is_draft(self) -> bool:
        return self.status == WorkflowStatus.DRAFT.value

    def is_published(self) -> bool:
        return self.status == WorkflowStatus.PUBLISHED.value

    @property
    def steps(self) -> list[Any]:
        return list(self.get("steps") or [])

    @property
    def forges(self) -> list[Any]:
        return list(self.get("forges") or [])

    @property
    def casts(self) -> list[Any]:
        return list(self.get("casts") or [])

    def start(self, data: dict[str, Any]) -> WorkflowSubmission:
        return type(self).start_workflow(weld_eid=self.eid, data=data, client=self.client)

    def submissions(self, status: Optional[str] = None, limit: Optional[int] = None) -> list[WorkflowSubmission]:
        return type(self).get_submissions(weld_eid=self.eid, status=status, limit=limit, client=self.client)

    @classmethod
    def create(
        cls,
        name: str,
        forges: Optional[list[str]] = None,
        casts: Optional[list[str]] = None,
        steps: Optional[list[Any]] = None,
        client: Optional[Client] = None,
        api_key: Optional[str] = None,
    ) -> Workflow:
        """
        Create a workflow.

        Args:
            name: Workflow name
            forges: Webform EIDs
            casts: PDF template EIDs
            steps: Optional step definitions
        """
        client = cls._resolve_client(client, api_key)
        payload: dict[str, Any] = {"name": name, "forges": forges or [], "casts": casts or []}
        if steps:
            payload["steps"] = steps

        data = cls._run_mutation(
            client, CREATE_WORKFLOW_MUTATION, {"input": payload}, "createWeld", "create workflow"
        )
        workflow = cls(data, client=client)
        logger.info(f"Created workflow {workflow.eid}")
        return workflow

    @classmethod
    def find(cls, weld_eid: str, client: Optional[Client] = None) -> Workflow:
        client = cls._resolve_client(client)
        data = cls._query_field(client, FIND_WORKFLOW_QUERY, {"eid": weld_eid}, "weld")
        if not data:
            raise NotFoundError(f"Workflow not found: {weld_eid}")
        return cls(data, client=client)

    @classmethod
    def start_workflow(
        cls,
        weld_eid: str,
        data: dict[str, Any],
        client: Optional[Client] = None,
    ) -> WorkflowSubmission:
        """Start a workflow with initial data."""
        client = cls._resolve_client(client)
        payload = cls._run_mutation(
            client,
            START_WORKFLOW_MUTATION,
            {"input": {"weldEid": weld_eid, "data": data}},
            "startWeld",
            "start workflow",
        )
        submission = WorkflowSubmission(payload, client=client)
        logger.info(f"Started workflow {weld_eid} (submission {submission.eid})")
        return submission

    @classmethod
    def get_submissions(
        cls,
        weld_eid: str,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        client: Optional[Client] = None,
    ) -> list[WorkflowSubmission]:
        client = cls._resolve_client(client)
        variables: dict[str, Any] = {"weldEid": weld_eid}
        if status:
            variables["status"] = status
        if limit:
            variables["limit"] = limit

        submissions = cls._query_field(client, WORKFLOW_SUBMISSIONS_QUERY, variables, "weldSubmissions") or []
        return [WorkflowSubmission(s, client=client) for s in submissions]


class WorkflowSubmission(Identifiable, Mutable, Resource):
    """One run through a workflow."""

    FIELDS = (
        "eid",
        "id",
        "weld_eid",
        "status",
        "current_step",
        "completed_steps",
        "data",
        "created_at",
        "updated_at",
    )

    @property
    def weld_eid(self) -> Optional[str]:
        return self.get("weld_eid")

    @property
    def status(self) -> Optional[str]:
        return self.get("status")

    @property
    def current_step(self) -> Optional[str]:
        return self.get("current_step")

    @property
    def completed_steps(self) -> list[Any]:
        return list(self.get("completed_steps") or [])

    @property
    def data(self) -> dict[str, Any]:
        return self.get("data") or {}

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("created_at"))

    def is_in_progress(self) -> bool:
        return self.status == SubmissionStatus.IN_PROGRESS.value

    def is_complete(self) -> bool:
        return self.status == SubmissionStatus.COMPLETE.value

    def continue_step(self, step_id: str, data: dict[str, Any]) -> WorkflowSubmission:
        """
        Continue the submission from step_id with additional data.

        Returns:
            A new WorkflowSubmission reflecting the server state
        """
        payload = self._run_mutation(
            self.client,
            CONTINUE_WORKFLOW_MUTATION,
            {"eid": self.eid, "stepId": step_id, "data": data},
            "continueWeld",
            "continue workflow",
        )
        return type(self)(payload, client=self.client)
