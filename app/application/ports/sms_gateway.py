from typing import Protocol, Optional


class SmsDeliveryFailure(Exception):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class SmsGateway(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    def send(self, to: str, body: str) -> str:
        ...
