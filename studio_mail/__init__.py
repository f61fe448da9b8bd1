"""Mail Lambdas: inbound forwarding and the contact form."""

from .config import ContactConfig, ForwarderConfig
from .contact import ContactFormHandler
from .errors import ConfigurationError, EmptyMessageError, MailError
from .forwarder import EmailForwarder
from .models import ContactFormData, ForwardedMessage, InboundMessage, MailEnvelope
from .recaptcha import RecaptchaVerifier
from .rewrite import rewrite_message
from .secrets import RECAPTCHA_TEST_SECRET, SecretParameterCache

__all__ = [
    "ContactConfig",
    "ContactFormData",
    "ContactFormHandler",
    "ConfigurationError",
    "EmailForwarder",
    "EmptyMessageError",
    "ForwardedMessage",
    "ForwarderConfig",
    "InboundMessage",
    "MailEnvelope",
    "MailError",
    "RECAPTCHA_TEST_SECRET",
    "RecaptchaVerifier",
    "SecretParameterCache",
    "rewrite_message",
]
