import email.policy
from dataclasses import dataclass
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, cast


@dataclass(frozen=True)
class MessageHeader:
    id: str
    subject: str = ""


@dataclass(frozen=True)
class AttachmentDescriptor:
    display_name: str
    part_ref: str


class MessageStore(Protocol):
    """Mail store the report pipeline fetches messages from."""

    async def get_displayed_message(self) -> Optional[MessageHeader]:
        ...

    async def get_full_headers(self, message_id: str) -> Mapping[str, Sequence[str]]:
        ...

    async def list_attachments(
        self, message_id: str
    ) -> Sequence[AttachmentDescriptor]:
        ...

    async def get_attachment_bytes(self, message_id: str, part_ref: str) -> bytes:
        ...


class UnknownMessageError(KeyError):
    def __init__(self, message_id: str):
        super().__init__(message_id)
        self.message_id = message_id

    def __str__(self):
        return f"Unknown message '{self.message_id}'."


class EmailMessageStore:
    """In-memory message store backed by parsed RFC 5322 messages."""

    def __init__(
        self,
        messages: Mapping[str, EmailMessage],
        *,
        displayed_message_id: Optional[str] = None,
    ):
        self.messages = dict(messages)
        self.displayed_message_id = displayed_message_id

    @classmethod
    def from_files(cls, *paths: Path) -> "EmailMessageStore":
        parser = BytesParser(policy=email.policy.default)
        messages = {}
        for path in paths:
            with open(path, "rb") as f:
                messages[str(path)] = cast(EmailMessage, parser.parse(f))
        return cls(messages, displayed_message_id=str(paths[0]) if paths else None)

    def _get(self, message_id: str) -> EmailMessage:
        try:
            return self.messages[message_id]
        except KeyError as err:
            raise UnknownMessageError(message_id) from err

    async def get_displayed_message(self) -> Optional[MessageHeader]:
        if self.displayed_message_id not in self.messages:
            return None
        msg = self.messages[self.displayed_message_id]
        return MessageHeader(
            id=self.displayed_message_id, subject=str(msg.get("subject", ""))
        )

    async def get_full_headers(self, message_id: str) -> Mapping[str, Sequence[str]]:
        msg = self._get(message_id)
        headers: Dict[str, List[str]] = {}
        for name, value in msg.items():
            headers.setdefault(name.lower(), []).append(str(value))
        headers["to"] = [
            address
            for _, address in getaddresses(msg.get_all("to", []))
            if address
        ]
        return headers

    async def list_attachments(
        self, message_id: str
    ) -> Sequence[AttachmentDescriptor]:
        attachments = []
        for index, part in enumerate(self._get(message_id).walk()):
            filename = part.get_filename()
            if filename:
                attachments.append(
                    AttachmentDescriptor(display_name=filename, part_ref=str(index))
                )
        return attachments

    async def get_attachment_bytes(self, message_id: str, part_ref: str) -> bytes:
        parts = list(self._get(message_id).walk())
        try:
            part = parts[int(part_ref)]
        except (ValueError, IndexError) as err:
            raise KeyError(f"No part '{part_ref}' in message '{message_id}'.") from err
        payload = part.get_payload(decode=True)
        return payload if isinstance(payload, bytes) else b""
