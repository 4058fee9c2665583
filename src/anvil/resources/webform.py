"""
Webforms (forges) and their submissions.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime
from typing import Any, Optional

from ..client import Client
from ..errors import APIError, NotFoundError
from .base import Identifiable, Mutable, Reloadable, Resource, parse_timestamp

logger = logging.getLogger(__name__)

FIELD_TYPES = (
    "text", "email", "phone", "number",
    "textarea", "select", "multiselect",
    "checkbox", "radio",
    "date", "time", "datetime",
    "file",
)

EXPORT_FORMATS = ("csv", "json")

CREATE_WEBFORM_MUTATION = """
mutation CreateForge($input: JSON) {
  createForge(variables: $input) {
    eid
    name
    fields
    styling
    validationRules
    createdAt
  }
}
"""

FIND_WEBFORM_QUERY = """
query GetForge($eid: String!) {
  forge(eid: $eid) {
    eid
    name
    fields
    styling
    validationRules
    createdAt
    updatedAt
  }
}
"""

CREATE_SUBMISSION_MUTATION = """
mutation CreateSubmission($input: JSON) {
  createSubmission(variables: $input) {
    eid
    forgeEid
    data
    submittedAt
    createdAt
  }
}
"""

WEBFORM_SUBMISSIONS_QUERY = """
query ForgeSubmissions($forgeEid: String!, $from: String, $to: String, $limit: Int) {
  forgeSubmissions(forgeEid: $forgeEid, from: $from, to: $to, limit: $limit) {
    eid
    forgeEid
    data
    submittedAt
    createdAt
  }
}
"""

EXPORT_SUBMISSIONS_QUERY = """
query ExportForgeSubmissions($forgeEid: String!, $format: String!) {
  exportForgeSubmissions(forgeEid: $forgeEid, format: $format) {
    data
  }
}
"""


class Webform(Identifiable, Reloadable, Mutable, Resource):
    """A hosted data-collection form (forge)."""

    FIELDS = ("eid", "id", "name", "fields", "styling", "validation_rules", "created_at", "updated_at")

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @property
    def fields(self) -> list[dict[str, Any]]:
        return list(self.get("fields") or [])

    @property
    def styling(self) -> dict[str, Any]:
        return self.get("styling") or {}

    @property
    def validation_rules(self) -> dict[str, Any]:
        return self.get("validation_rules") or {}

    def submit(self, data: dict[str, Any], files: Optional[dict[str, Any]] = None) -> WebformSubmission:
        return type(self).create_submission(forge_eid=self.eid, data=data, files=files, client=self.client)

    def submissions(
        self,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[WebformSubmission]:
        return type(self).get_submissions(
            forge_eid=self.eid, from_=from_, to=to, limit=limit, client=self.client
        )

    def export_submissions(self, format: str = "csv") -> str:
        return type(self).export_forge_submissions(forge_eid=self.eid, format=format, client=self.client)

    @classmethod
    def create(
        cls,
        name: str,
        fields: list[dict[str, Any]],
        styling: Optional[dict[str, Any]] = None,
        validation_rules: Optional[dict[str, Any]] = None,
        client: Optional[Client] = None,
        api_key: Optional[str] = None,
    ) -> Webform:
        """
        Create a webform.

        Args:
            name: Form name
            fields: Field definitions (type, name, label, required, options, validation)
            styling: Optional styling configuration
            validation_rules: Optional form-level validation rules

        Raises:
            ValueError: A field uses an unknown type
        """
        client = cls._resolve_client(client, api_key)
        payload: dict[str, Any] = {"name": name, "fields": cls._normalize_fields(fields)}
        if styling:
            payload["styling"] = styling
        if validation_rules:
            payload["validationRules"] = validation_rules

        data = cls._run_mutation(
            client, CREATE_WEBFORM_MUTATION, {"input": payload}, "createForge", "create webform"
        )
        webform = cls(data, client=client)
        logger.info(f"Created webform {webform.eid}")
        return webform

    @classmethod
    def find(cls, forge_eid: str, client: Optional[Client] = None) -> Webform:
        client = cls._resolve_client(client)
        data = cls._query_field(client, FIND_WEBFORM_QUERY, {"eid": forge_eid}, "forge")
        if not data:
            raise NotFoundError(f"Webform not found: {forge_eid}")
        return cls(data, client=client)

    @classmethod
    def create_submission(
        cls,
        forge_eid: str,
        data: dict[str, Any],
        files: Optional[dict[str, Any]] = None,
        client: Optional[Client] = None,
    ) -> WebformSubmission:
        """
        Submit data to a webform.

        Args:
            forge_eid: Webform EID
            data: Form values
            files: Uploads keyed by field name; bytes and file objects are
                base64-encoded, strings are sent as-is
        """
        client = cls._resolve_client(client)
        payload: dict[str, Any] = {"forgeEid": forge_eid, "data": data}
        if files:
            payload["files"] = {name: _encode_upload(f) for name, f in files.items()}

        result = cls._run_mutation(
            client,
            CREATE_SUBMISSION_MUTATION,
            {"input": payload},
            "createSubmission",
            "create submission",
        )
        return WebformSubmission(result, client=client)

    @classmethod
    def get_submissions(
        cls,
        forge_eid: str,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
        limit: Optional[int] = None,
        client: Optional[Client] = None,
    ) -> list[WebformSubmission]:
        client = cls._resolve_client(client)
        variables: dict[str, Any] = {"forgeEid": forge_eid}
        if from_:
            variables["from"] = from_.isoformat()
        if to:
            variables["to"] = to.isoformat()
        if limit:
            variables["limit"] = limit

        submissions = cls._query_field(client, WEBFORM_SUBMISSIONS_QUERY, variables, "forgeSubmissions") or []
        return [WebformSubmission(s, client=client) for s in submissions]

    @classmethod
    def export_forge_submissions(
        cls,
        forge_eid: str,
        format: str = "csv",
        client: Optional[Client] = None,
    ) -> str:
        """Export all submissions as CSV or JSON text."""
        if format.lower() not in EXPORT_FORMATS:
            raise ValueError(f"Export format must be one of {EXPORT_FORMATS}, got {format!r}")

        client = cls._resolve_client(client)
        response = client.query(EXPORT_SUBMISSIONS_QUERY, {"forgeEid": forge_eid, "format": format.upper()})
        data = response.data
        result = data.get("exportForgeSubmissions") if isinstance(data, dict) else None
        if result is None:
            raise APIError(f"Failed to export submissions: {response.body}", response)
        return result.get("data") if isinstance(result, dict) else result

    @staticmethod
    def _normalize_fields(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
        normalized = []
        for field in fields:
            field_type = field.get("type")
            if field_type not in FIELD_TYPES:
                raise ValueError(f"Unknown webform field type: {field_type!r}")
            entry = {
                "type": field_type,
                "name": field.get("name"),
                "label": field.get("label"),
                "required": field.get("required") or False,
                "options": field.get("options"),
                "validation": field.get("validation"),
            }
            normalized.append({k: v for k, v in entry.items() if v is not None})
        return normalized


class WebformSubmission(Identifiable, Resource):
    """Data submitted to a webform."""

    FIELDS = ("eid", "id", "forge_eid", "data", "submitted_at", "created_at")

    @property
    def forge_eid(self) -> Optional[str]:
        return self.get("forge_eid")

    @property
    def data(self) -> dict[str, Any]:
        return self.get("data") or {}

    @property
    def submitted_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("submitted_at"))

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("created_at"))


def _encode_upload(file: Any) -> Any:
    if hasattr(file, "read"):
        file = file.read()
    if isinstance(file, bytes):
        return base64.b64encode(file).decode("ascii")
    return file
