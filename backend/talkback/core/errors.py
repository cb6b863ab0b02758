# talkback/core/errors.py


class TalkbackError(Exception):
    """Base class for errors raised by the messaging core."""


class MessageNotFoundError(TalkbackError):
    def __init__(self, message_id):
        super().__init__(f"Message not found: {message_id}")
        self.message_id = message_id


class InvalidReceiptStatusError(TalkbackError):
    def __init__(self, status):
        super().__init__(f"Invalid receipt status: {status!r}")
        self.status = status


class EmptyMessageError(TalkbackError):
    def __init__(self):
        super().__init__("A message needs text, an image, a location or audio")
