"""
Inbound webhook parsing, token verification and payload decryption.

Lifecycle:
- parse: the JSON payload is decoded immediately; malformed input raises
  WebhookError and never yields a partially built Webhook
- verify: pure comparison of the inbound token against the expected token
- decrypt: explicit step, only when `data` arrived as RSA ciphertext

The token is supplied by the caller (from a header or query parameter);
extracting it from a framework request object is left to the caller.
"""

import base64
import hmac
import json
import logging
import os
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from .config import Configuration, get_configuration
from .errors import WebhookError, WebhookVerificationError
from .resources.base import normalize_keys

logger = logging.getLogger(__name__)

PRIVATE_KEY_PATH_ENV = "ANVIL_RSA_PRIVATE_KEY_PATH"

_BASE64_ALPHABET = re.compile(r"[A-Za-z0-9+/=]+")


class WebhookAction(str, Enum):
    """Webhook event names sent by Anvil."""

    WORKFLOW_CREATED = "weldCreate"
    WORKFLOW_COMPLETE = "weldComplete"
    WEBFORM_COMPLETE = "forgeComplete"
    SIGNER_COMPLETE = "signerComplete"
    SIGNER_STATUS_UPDATED = "signerUpdateStatus"
    SIGNATURE_PACKET_COMPLETE = "etchPacketComplete"
    DOCUMENT_GROUP_CREATED = "documentGroupCreate"
    TEST = "webhookTest"


def secure_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """Length-checked constant-time comparison."""
    a_bytes = a.encode("utf-8") if isinstance(a, str) else a
    b_bytes = b.encode("utf-8") if isinstance(b, str) else b
    if len(a_bytes) != len(b_bytes):
        return False
    return hmac.compare_digest(a_bytes, b_bytes)


class Webhook:
    """A parsed webhook delivery."""

    def __init__(self, payload: Union[str, bytes, Mapping[str, Any]], token: Optional[str] = None):
        """
        Parse a webhook payload.

        Args:
            payload: Raw JSON body (str/bytes) or an already decoded mapping
            token: Authenticity token delivered alongside the payload

        Raises:
            WebhookError: The payload is not a JSON object
        """
        try:
            if isinstance(payload, Mapping):
                raw = json.dumps(dict(payload))
            elif isinstance(payload, bytes):
                raw = payload.decode("utf-8")
            else:
                raw = str(payload)
            parsed = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise WebhookError(f"Invalid webhook payload: {e}") from e

        if not isinstance(parsed, dict):
            raise WebhookError("Invalid webhook payload: expected a JSON object")

        self.raw_payload = raw
        self.token = token
        self._payload = parsed
        self._data = normalize_keys(parsed.get("data"))

    @classmethod
    def parse(cls, payload: Union[str, bytes, Mapping[str, Any]], token: Optional[str] = None) -> "Webhook":
        return cls(payload, token=token)

    @classmethod
    def create_test(
        cls,
        action: Union[str, WebhookAction] = WebhookAction.TEST,
        data: Optional[dict[str, Any]] = None,
        config: Optional[Configuration] = None,
    ) -> "Webhook":
        """Build a webhook signed with the configured token, for development."""
        config = config or get_configuration()
        payload = {
            "action": WebhookAction(action).value,
            "data": data or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        return cls(json.dumps(payload), token=config.get_webhook_token())

    @property
    def action(self) -> Optional[str]:
        return self._payload.get("action")

    @property
    def data(self) -> Any:
        """Event data: a mapping with normalized keys, or a ciphertext string."""
        return self._data

    @property
    def timestamp(self) -> Optional[str]:
        return self._payload.get("timestamp") or self._payload.get("createdAt") or self._payload.get("created_at")

    # Verification

    def is_valid(self, expected_token: Optional[str] = None, config: Optional[Configuration] = None) -> bool:
        """
        Compare the inbound token against the expected token.

        Args:
            expected_token: Token to compare against (defaults to the
                configured webhook token)
            config: Configuration supplying the fallback token

        Returns:
            False when no inbound token was supplied or it does not match

        Raises:
            WebhookVerificationError: No expected token is configured
        """
        expected = expected_token or (config or get_configuration()).get_webhook_token()
        if not expected:
            raise WebhookVerificationError("No webhook token configured")

        if not self.token:
            return False

        matches = secure_compare(self.token, expected)
        if not matches:
            logger.warning(f"Webhook token mismatch for action {self.action!r}")
        return matches

    def verify(self, expected_token: Optional[str] = None, config: Optional[Configuration] = None) -> "Webhook":
        """Like is_valid(), but raises WebhookVerificationError on mismatch."""
        if not self.is_valid(expected_token, config=config):
            raise WebhookVerificationError("Invalid webhook token")
        return self

    # Decryption

    def is_encrypted(self) -> bool:
        """True when `data` is a base64 string rather than a structured record."""
        return isinstance(self._data, str) and bool(_BASE64_ALPHABET.fullmatch(self._data))

    def decrypt(
        self,
        private_key_path: Optional[Union[str, Path]] = None,
        passphrase: Optional[str] = None,
    ) -> Any:
        """
        Decrypt RSA-OAEP encrypted webhook data.

        Args:
            private_key_path: PEM private key (defaults to
                ANVIL_RSA_PRIVATE_KEY_PATH)
            passphrase: Key passphrase, if the key is encrypted

        Returns:
            The decrypted data with normalized keys, or `data` unchanged
            when it is not encrypted

        Raises:
            WebhookError: Missing key, or any decoding/decryption failure
        """
        if not self.is_encrypted():
            return self._data

        key_path = private_key_path or os.environ.get(PRIVATE_KEY_PATH_ENV)
        if not key_path or not Path(key_path).exists():
            raise WebhookError("Private key not found for decrypting webhook data")

        try:
            private_key = serialization.load_pem_private_key(
                Path(key_path).read_bytes(),
                password=passphrase.encode() if passphrase else None,
            )
            ciphertext = base64.b64decode(self._data, validate=True)
            plaintext = private_key.decrypt(
                ciphertext,
                padding.OAEP(
                    mgf=padding.MGF1(algorithm=hashes.SHA1()),
                    algorithm=hashes.SHA1(),
                    label=None,
                ),
            )
            return normalize_keys(json.loads(plaintext))
        except Exception as e:
            logger.warning(f"Webhook decryption failed: {e}")
            raise WebhookError(f"Failed to decrypt webhook data: {e}") from e

    # Event predicates

    def is_action(self, action: Union[str, WebhookAction]) -> bool:
        if isinstance(action, WebhookAction):
            action = action.value
        return self.action == action

    def is_workflow_created(self) -> bool:
        return self.is_action(WebhookAction.WORKFLOW_CREATED)

    def is_workflow_complete(self) -> bool:
        return self.is_action(WebhookAction.WORKFLOW_COMPLETE)

    def is_webform_complete(self) -> bool:
        return self.is_action(WebhookAction.WEBFORM_COMPLETE)

    def is_signer_complete(self) -> bool:
        return self.is_action(WebhookAction.SIGNER_COMPLETE)

    def is_signer_status_updated(self) -> bool:
        return self.is_action(WebhookAction.SIGNER_STATUS_UPDATED)

    def is_signature_packet_complete(self) -> bool:
        return self.is_action(WebhookAction.SIGNATURE_PACKET_COMPLETE)

    def is_document_group_created(self) -> bool:
        return self.is_action(WebhookAction.DOCUMENT_GROUP_CREATED)

    def is_test(self) -> bool:
        return self.is_action(WebhookAction.TEST)

    # Typed data extractors (None when the action does not carry the field)

    def _field(self, key: str) -> Any:
        if isinstance(self._data, dict):
            return self._data.get(key)
        return None

    def _is_signer_event(self) -> bool:
        return self.is_signer_complete() or self.is_signer_status_updated()

    @property
    def signer_eid(self) -> Optional[str]:
        return self._field("signer_eid") if self._is_signer_event() else None

    @property
    def signer_name(self) -> Optional[str]:
        return self._field("signer_name") if self._is_signer_event() else None

    @property
    def signer_email(self) -> Optional[str]:
        return self._field("signer_email") if self._is_signer_event() else None

    @property
    def signer_status(self) -> Optional[str]:
        return self._field("status") if self.is_signer_status_updated() else None

    @property
    def packet_eid(self) -> Optional[str]:
        if self.is_signature_packet_complete() or self.is_signer_complete():
            return self._field("packet_eid")
        return None

    @property
    def workflow_eid(self) -> Optional[str]:
        if self.is_workflow_created() or self.is_workflow_complete():
            return self._field("weld_eid") or self._field("eid")
        return None

    @property
    def webform_eid(self) -> Optional[str]:
        return self._field("forge_eid") if self.is_webform_complete() else None

    def __repr__(self) -> str:
        return f"<Webhook action={self.action!r} timestamp={self.timestamp!r}>"
