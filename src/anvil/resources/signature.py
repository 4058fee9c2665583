"""
Etch e-signature packets and their signers.

A SignaturePacket carries its signers as nested attributes. A Signer keeps
only the EID of its packet; operations that need the packet go through
the owning client rather than holding a reference to the parent object.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..client import Client
from ..errors import APIError, NotFoundError
from .base import Identifiable, Mutable, Reloadable, Resource, parse_timestamp

logger = logging.getLogger(__name__)


class PacketStatus(str, Enum):
    """Etch packet lifecycle."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIAL_COMPLETE = "partial_complete"
    COMPLETE = "complete"


SIGNER_FIELDS = """
    eid
    name
    email
    status
    routingOrder
    completedAt
"""

PACKET_FIELDS = f"""
    eid
    name
    status
    createdAt
    completedAt
    signers {{{SIGNER_FIELDS}}}
    documents {{
      eid
      name
      type
    }}
"""

CREATE_PACKET_MUTATION = f"""
mutation CreateEtchPacket($input: JSON) {{
  createEtchPacket(variables: $input) {{{PACKET_FIELDS}}}
}}
"""

FIND_PACKET_QUERY = f"""
query GetEtchPacket($eid: String!) {{
  etchPacket(eid: $eid) {{{PACKET_FIELDS}}}
}}
"""

LIST_PACKETS_QUERY = """
query ListEtchPackets($limit: Int, $offset: Int, $status: String) {
  etchPackets(limit: $limit, offset: $offset, status: $status) {
    eid
    name
    status
    createdAt
    completedAt
  }
}
"""

UPDATE_PACKET_MUTATION = f"""
mutation UpdateEtchPacket($eid: String!, $input: JSON) {{
  updateEtchPacket(eid: $eid, variables: $input) {{{PACKET_FIELDS}}}
}}
"""

SEND_PACKET_MUTATION = f"""
mutation SendEtchPacket($eid: String!) {{
  sendEtchPacket(eid: $eid) {{{PACKET_FIELDS}}}
}}
"""

VOID_PACKET_MUTATION = f"""
mutation VoidEtchPacket($eid: String!, $reason: String) {{
  voidEtchPacket(eid: $eid, reason: $reason) {{{PACKET_FIELDS}}}
}}
"""

REMOVE_PACKET_MUTATION = """
mutation RemoveEtchPacket($eid: String!) {
  removeEtchPacket(eid: $eid)
}
"""

GENERATE_URL_MUTATION = """
mutation GenerateEtchSignURL($input: GenerateEtchSignURLInput!) {
  generateEtchSignURL(input: $input) {
    url
  }
}
"""

SKIP_SIGNER_MUTATION = f"""
mutation SkipSigner($eid: String!) {{
  skipSigner(eid: $eid) {{{SIGNER_FIELDS}}}
}}
"""

NOTIFY_SIGNER_MUTATION = f"""
mutation NotifySigner($eid: String!) {{
  notifySigner(eid: $eid) {{{SIGNER_FIELDS}}}
}}
"""

EXPIRE_TOKENS_MUTATION = """
mutation ExpireSignerTokens($signerEid: String!) {
  expireSignerTokens(signerEid: $signerEid)
}
"""


class SignaturePacket(Identifiable, Reloadable, Mutable, Resource):
    """An Etch signature packet: documents plus the signers who must sign them."""

    FIELDS = ("eid", "id", "name", "status", "created_at", "completed_at", "signers", "documents")

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @property
    def status(self) -> Optional[str]:
        return self.get("status")

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("created_at"))

    @property
    def completed_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("completed_at"))

    def is_draft(self) -> bool:
        return self.status == PacketStatus.DRAFT.value

    def is_sent(self) -> bool:
        return self.status == PacketStatus.SENT.value

    def is_partially_complete(self) -> bool:
        return self.status == PacketStatus.PARTIAL_COMPLETE.value

    def is_complete(self) -> bool:
        return self.status == PacketStatus.COMPLETE.value

    def is_in_progress(self) -> bool:
        """Sent to signers and not yet complete."""
        return self.is_sent() or self.is_partially_complete()

    def signers(self) -> list["Signer"]:
        return [
            Signer(signer, client=self._client, packet_eid=self.eid)
            for signer in self.get("signers") or []
        ]

    def documents(self) -> list[dict[str, Any]]:
        return list(self.get("documents") or [])

    def signing_url(self, signer_eid: str, client_user_id: Optional[str] = None) -> str:
        return type(self).generate_signing_url(
            packet_eid=self.eid,
            signer_eid=signer_eid,
            client_user_id=client_user_id,
            client=self.client,
        )

    # Mutations (each returns a fresh instance)

    def update(self, **changes: Any) -> "SignaturePacket":
        """Update packet fields (e.g. name=...). Returns the updated packet."""
        payload = self._run_mutation(
            self.client,
            UPDATE_PACKET_MUTATION,
            {"eid": self.eid, "input": changes},
            "updateEtchPacket",
            "update signature packet",
        )
        return type(self)(payload, client=self.client)

    def send(self) -> "SignaturePacket":
        """Send a draft packet to its signers."""
        payload = self._run_mutation(
            self.client,
            SEND_PACKET_MUTATION,
            {"eid": self.eid},
            "sendEtchPacket",
            "send signature packet",
        )
        logger.info(f"Sent signature packet {self.eid}")
        return type(self)(payload, client=self.client)

    def void(self, reason: Optional[str] = None) -> "SignaturePacket":
        payload = self._run_mutation(
            self.client,
            VOID_PACKET_MUTATION,
            {"eid": self.eid, "reason": reason},
            "voidEtchPacket",
            "void signature packet",
        )
        logger.info(f"Voided signature packet {self.eid}")
        return type(self)(payload, client=self.client)

    def delete(self) -> bool:
        removed = self._run_mutation(
            self.client,
            REMOVE_PACKET_MUTATION,
            {"eid": self.eid},
            "removeEtchPacket",
            "delete signature packet",
        )
        logger.info(f"Deleted signature packet {self.eid}")
        return bool(removed)

    def skip_signer(self, signer_eid: str) -> "Signer":
        payload = self._run_mutation(
            self.client,
            SKIP_SIGNER_MUTATION,
            {"eid": signer_eid},
            "skipSigner",
            "skip signer",
        )
        return Signer(payload, client=self.client, packet_eid=self.eid)

    def notify_signer(self, signer_eid: str) -> "Signer":
        """Send the signer a reminder email."""
        payload = self._run_mutation(
            self.client,
            NOTIFY_SIGNER_MUTATION,
            {"eid": signer_eid},
            "notifySigner",
            "notify signer",
        )
        return Signer(payload, client=self.client, packet_eid=self.eid)

    def expire_tokens(self, signer_eid: str) -> bool:
        """Invalidate outstanding signing URLs for a signer."""
        expired = self._run_mutation(
            self.client,
            EXPIRE_TOKENS_MUTATION,
            {"signerEid": signer_eid},
            "expireSignerTokens",
            "expire signer tokens",
        )
        return bool(expired)

    # Class-level operations

    @classmethod
    def create(
        cls,
        name: str,
        signers: list[dict[str, Any]],
        files: Optional[list[dict[str, Any]]] = None,
        client: Optional[Client] = None,
        api_key: Optional[str] = None,
        **options: Any,
    ) -> "SignaturePacket":
        """
        Create a signature packet.

        Args:
            name: Packet name
            signers: Dicts with name, email, optional role / signer_type
            files: Dicts with {"type": "pdf", "id": cast_eid} or
                {"type": "upload", "data": bytes, "filename": ...}
            **options: is_draft, webhook_url, email_subject, email_body

        Returns:
            The created packet
        """
        client = cls._resolve_client(client, api_key)
        payload = cls._build_create_payload(name, signers, files, options)

        data = cls._run_mutation(
            client,
            CREATE_PACKET_MUTATION,
            {"input": payload},
            "createEtchPacket",
            "create signature packet",
        )
        packet = cls(data, client=client)
        logger.info(f"Created signature packet {packet.eid}")
        return packet

    @classmethod
    def find(cls, packet_eid: str, client: Optional[Client] = None) -> "SignaturePacket":
        client = cls._resolve_client(client)
        data = cls._query_field(client, FIND_PACKET_QUERY, {"eid": packet_eid}, "etchPacket")
        if not data:
            raise NotFoundError(f"Signature packet not found: {packet_eid}")
        return cls(data, client=client)

    @classmethod
    def list(
        cls,
        limit: int = 10,
        offset: int = 0,
        status: Optional[str] = None,
        client: Optional[Client] = None,
    ) -> list["SignaturePacket"]:
        client = cls._resolve_client(client)
        variables: dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            variables["status"] = status

        packets = cls._query_field(client, LIST_PACKETS_QUERY, variables, "etchPackets") or []
        return [cls(packet, client=client) for packet in packets]

    @classmethod
    def generate_signing_url(
        cls,
        packet_eid: str,
        signer_eid: str,
        client_user_id: Optional[str] = None,
        client: Optional[Client] = None,
    ) -> str:
        """Generate an embedded signing URL for a signer."""
        client = cls._resolve_client(client)
        payload = {"packetEid": packet_eid, "signerEid": signer_eid}
        if client_user_id:
            payload["clientUserId"] = client_user_id

        response = client.mutation(GENERATE_URL_MUTATION, {"input": payload})
        data = response.data
        result = data.get("generateEtchSignURL") if isinstance(data, dict) else None
        url = result.get("url") if isinstance(result, dict) else None
        if not url:
            raise APIError(f"Failed to generate signing URL: {response.body}", response)
        return url

    @classmethod
    def _build_create_payload(
        cls,
        name: str,
        signers: list[dict[str, Any]],
        files: Optional[list[dict[str, Any]]],
        options: dict[str, Any],
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": name,
            "signers": [cls._signer_payload(s) for s in signers],
        }

        if files:
            payload["files"] = [cls._file_payload(f, i) for i, f in enumerate(files, start=1)]
        if "is_draft" in options:
            payload["isDraft"] = options["is_draft"]
        if options.get("webhook_url"):
            payload["webhookURL"] = options["webhook_url"]
        if options.get("email_subject"):
            payload["signatureEmailSubject"] = options["email_subject"]
        if options.get("email_body"):
            payload["signatureEmailBody"] = options["email_body"]

        return payload

    @staticmethod
    def _signer_payload(signer: dict[str, Any]) -> dict[str, Any]:
        payload = {
            "name": signer.get("name"),
            "email": signer.get("email"),
            "role": signer.get("role") or "signer",
            "signerType": signer.get("signer_type") or "email",
        }
        return {k: v for k, v in payload.items() if v is not None}

    @staticmethod
    def _file_payload(file: dict[str, Any], position: int) -> dict[str, Any]:
        file_type = file.get("type")
        if file_type == "pdf" and file.get("id"):
            return {"id": f"file{position}", "castEid": file["id"]}
        if file_type == "upload" and file.get("data"):
            return {
                "type": "upload",
                "data": base64.b64encode(file["data"]).decode("ascii"),
                "filename": file.get("filename") or "document.pdf",
            }
        return file


class Signer(Identifiable, Resource):
    """A party required to sign within a packet."""

    FIELDS = ("eid", "id", "name", "email", "status", "routing_order", "completed_at")

    def __init__(
        self,
        attributes: Optional[dict[str, Any]] = None,
        client: Optional[Client] = None,
        packet_eid: Optional[str] = None,
    ):
        super().__init__(attributes, client=client)
        self.packet_eid = packet_eid

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @property
    def email(self) -> Optional[str]:
        return self.get("email")

    @property
    def status(self) -> Optional[str]:
        return self.get("status")

    @property
    def completed_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get("completed_at"))

    def is_complete(self) -> bool:
        return self.status == "complete"

    def packet(self) -> Optional[SignaturePacket]:
        """Look up the parent packet through the client."""
        if not self.packet_eid:
            return None
        return SignaturePacket.find(self.packet_eid, client=self.client)

    def _parent(self) -> SignaturePacket:
        # Detached handle carrying only the EID; no fetch.
        return SignaturePacket({"eid": self.packet_eid}, client=self._client)

    def signing_url(self, client_user_id: Optional[str] = None) -> Optional[str]:
        if not self.packet_eid:
            return None
        return SignaturePacket.generate_signing_url(
            packet_eid=self.packet_eid,
            signer_eid=self.eid,
            client_user_id=client_user_id,
            client=self.client,
        )

    def skip(self) -> "Signer":
        return self._parent().skip_signer(self.eid)

    def send_reminder(self) -> "Signer":
        return self._parent().notify_signer(self.eid)

    def expire_tokens(self) -> bool:
        return self._parent().expire_tokens(self.eid)
