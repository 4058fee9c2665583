"""
PDF filling and generation.

Both operations POST to REST endpoints that answer with the binary PDF on
success and a JSON error body otherwise.
"""

import base64
import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..client import Client, Response
from ..errors import APIError, FileError, MissingContentError
from .base import Resource

logger = logging.getLogger(__name__)

GENERATE_TYPES = ("html", "markdown")
SIZE_UNITS = ("B", "KB", "MB", "GB")

# snake_case option -> API key for the fill endpoint
FILL_OPTIONS = {
    "title": "title",
    "font_size": "fontSize",
    "font_family": "fontFamily",
    "text_color": "textColor",
    "use_interactive_fields": "useInteractiveFields",
}

PAGE_OPTIONS = {
    "width": "width",
    "height": "height",
    "margin_top": "marginTop",
    "margin_bottom": "marginBottom",
    "margin_left": "marginLeft",
    "margin_right": "marginRight",
    "page_count": "pageCount",
}


class PDF(Resource):
    """A filled or generated PDF document (raw bytes plus attributes)."""

    FIELDS = ("template_id", "type")

    def __init__(
        self,
        raw_data: Optional[bytes] = None,
        attributes: Optional[dict[str, Any]] = None,
        client: Optional[Client] = None,
    ):
        super().__init__(attributes, client=client)
        self.raw_data = raw_data

    @property
    def template_id(self) -> Optional[str]:
        return self.get("template_id")

    @property
    def type(self) -> Optional[str]:
        return self.get("type")

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the PDF bytes to path.

        Raises:
            MissingContentError: There is no PDF data
            FileError: The write failed
        """
        if not self.raw_data:
            raise MissingContentError("No PDF data to save")

        path = Path(path)
        try:
            path.write_bytes(self.raw_data)
        except OSError as e:
            raise FileError(f"Failed to save PDF: {e}") from e

        logger.info(f"Saved PDF ({self.size_human()}) to {path}")
        return path

    def to_base64(self) -> Optional[str]:
        if not self.raw_data:
            return None
        return base64.b64encode(self.raw_data).decode("ascii")

    @property
    def size(self) -> int:
        return len(self.raw_data) if self.raw_data else 0

    def size_human(self) -> str:
        """Size with 1024-based units, e.g. `1.50 KB`."""
        size = self.size
        if size == 0:
            return "0 B"

        exp = 0
        while exp < len(SIZE_UNITS) - 1 and size >= 1024 ** (exp + 1):
            exp += 1
        return f"{size / (1024 ** exp):.2f} {SIZE_UNITS[exp]}"

    def __eq__(self, other: object) -> bool:
        return super().__eq__(other) and other.raw_data == self.raw_data

    def __repr__(self) -> str:
        return f"<PDF {self.size_human()} {self._attributes!r}>"

    @classmethod
    def from_response(cls, response: Response, client: Optional[Client] = None, **attributes: Any) -> "PDF":
        """
        Build a PDF from a binary response.

        Raises:
            APIError: The response is not a binary document
        """
        if not response.is_binary():
            raise APIError(
                f"Expected PDF response but got: {response.content_type or 'unknown content type'}",
                response,
            )
        raw = response.raw_body
        if isinstance(raw, str):
            raw = raw.encode("latin-1")
        return cls(raw, attributes, client=client)

    @classmethod
    def fill(
        cls,
        template_id: str,
        data: dict[str, Any],
        client: Optional[Client] = None,
        api_key: Optional[str] = None,
        **options: Any,
    ) -> "PDF":
        """
        Fill a PDF template with data.

        Args:
            template_id: PDF template (cast) EID
            data: Field values to fill
            client: Client to use (defaults to the type's default client)
            api_key: Per-call API key (builds a dedicated client)
            **options: title, font_size, font_family, text_color,
                use_interactive_fields

        Returns:
            The filled PDF
        """
        client = cls._resolve_client(client, api_key)
        payload = cls._build_fill_payload(data, options)

        response = client.post(f"/fill/{template_id}.pdf", payload)
        pdf = cls.from_response(response, client=client, template_id=template_id)
        logger.info(f"Filled template {template_id} ({pdf.size_human()})")
        return pdf

    @classmethod
    def generate(
        cls,
        data: Any,
        type: str = "markdown",
        client: Optional[Client] = None,
        api_key: Optional[str] = None,
        **options: Any,
    ) -> "PDF":
        """
        Generate a PDF from HTML or Markdown.

        Args:
            data: Content data (html/css mapping, or a list of markdown blocks)
            type: "html" or "markdown"
            client: Client to use
            api_key: Per-call API key
            **options: title, page (width, height, margin_*, page_count)

        Raises:
            ValueError: Unknown type
        """
        generate_type = str(type).lower()
        if generate_type not in GENERATE_TYPES:
            raise ValueError(f"Type must be 'html' or 'markdown', got {type!r}")

        client = cls._resolve_client(client, api_key)
        payload = cls._build_generate_payload(generate_type, data, options)

        response = client.post("/generate-pdf", payload)
        pdf = cls.from_response(response, client=client, type=generate_type)
        logger.info(f"Generated {generate_type} PDF ({pdf.size_human()})")
        return pdf

    @classmethod
    def generate_from_html(cls, html: str, css: Optional[str] = None, **options: Any) -> "PDF":
        data = {"html": html}
        if css:
            data["css"] = css
        return cls.generate(data, type="html", **options)

    @classmethod
    def generate_from_markdown(cls, content: Union[str, list], **options: Any) -> "PDF":
        if isinstance(content, str):
            data = [{"content": content}]
        elif isinstance(content, list):
            data = content
        else:
            raise ValueError("Markdown content must be a string or list")
        return cls.generate(data, type="markdown", **options)

    @staticmethod
    def _build_fill_payload(data: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {"data": data}
        for option, key in FILL_OPTIONS.items():
            value = options.get(option)
            if value is not None:
                payload[key] = value
        return payload

    @staticmethod
    def _build_generate_payload(generate_type: str, data: Any, options: dict[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": generate_type, "data": data}

        if options.get("title"):
            payload["title"] = options["title"]

        page = options.get("page")
        if page:
            payload["page"] = {
                key: page[option] for option, key in PAGE_OPTIONS.items() if page.get(option) is not None
            }

        return payload
