from .signals import Sender, SenderDelegator, Sendable, send_event
