"""Data models for SES receipt events, inbound messages and form posts."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

NO_SUBJECT = "(no subject)"


# ------------------------------------------------------------------
# SES receipt event (Lambda action of a receipt rule)
# ------------------------------------------------------------------


class SesCommonHeaders(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: list[str] = Field(default_factory=list, alias="from")
    to: list[str] = Field(default_factory=list)
    subject: str | None = None


class SesMail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(alias="messageId")
    common_headers: SesCommonHeaders = Field(default_factory=SesCommonHeaders, alias="commonHeaders")


class SesReceipt(BaseModel):
    recipients: list[str] = Field(default_factory=list)


class SesPayload(BaseModel):
    mail: SesMail
    receipt: SesReceipt = Field(default_factory=SesReceipt)


class SesRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_source: str | None = Field(default=None, alias="eventSource")
    ses: SesPayload


class SesEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    records: list[SesRecord] = Field(default_factory=list, alias="Records")


# ------------------------------------------------------------------
# Inbound / forwarded messages
# ------------------------------------------------------------------


@dataclass(frozen=True)
class MailEnvelope:
    """Summary headers SES extracted when the message was received."""

    recipients: tuple[str, ...]
    original_from: str
    original_subject: str = NO_SUBJECT


@dataclass(frozen=True)
class InboundMessage:
    """A received message: SES metadata plus the raw RFC 822 bytes."""

    message_id: str
    recipients: tuple[str, ...]
    original_from: str
    original_subject: str
    raw_body: bytes

    @classmethod
    def from_record(cls, record: SesRecord, raw_body: bytes) -> InboundMessage:
        mail = record.ses.mail
        senders = mail.common_headers.from_
        return cls(
            message_id=mail.message_id,
            recipients=tuple(record.ses.receipt.recipients),
            original_from=senders[0] if senders else "",
            original_subject=mail.common_headers.subject or NO_SUBJECT,
            raw_body=raw_body,
        )

    @property
    def envelope(self) -> MailEnvelope:
        return MailEnvelope(
            recipients=self.recipients,
            original_from=self.original_from,
            original_subject=self.original_subject,
        )


@dataclass(frozen=True)
class ForwardedMessage:
    """The rewritten document and how it must be submitted to SES."""

    raw: bytes
    source: str
    destinations: tuple[str, ...]
    is_bounce: bool


# ------------------------------------------------------------------
# Contact / quote form
# ------------------------------------------------------------------


class ContactFormData(BaseModel):
    """Fields posted by the contact and quote forms (all optional)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    message: str | None = None
    recaptcha_token: str | None = Field(default=None, alias="recaptchaToken")
    form_type: str | None = Field(default=None, alias="formType")

    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    service_type: str | None = Field(default=None, alias="serviceType")
    business_type: str | None = Field(default=None, alias="businessType")
    current_website: str | None = Field(default=None, alias="currentWebsite")
    company_name: str | None = Field(default=None, alias="companyName")
    industry: str | None = None
    timeline: str | None = None
    description: str | None = None

    @property
    def is_quote(self) -> bool:
        if self.form_type == "quote":
            return True
        return bool(self.first_name and self.last_name and self.service_type)
