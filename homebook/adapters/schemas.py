"""
Wire-format models for the storefront REST API.

Response bodies are validated here and converted into domain entities, so
null or stringly-typed fields never reach pricing or window logic.
"""

from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import ParseError
from ..domain.models import (
    AuthSession,
    Booking,
    BookingRequest,
    BookingStatus,
    Confirmation,
    Service,
    ServiceSummary,
    TimeOfDay,
    UserProfile,
    WorkItem,
    parse_calendar_date,
)
from ..domain.pricing import parse_price

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WorkSpecificationPayload(_Payload):
    id: int
    name: str
    price: Any = None

    def to_domain(self) -> WorkItem:
        return WorkItem(id=self.id, name=self.name, unit_price=parse_price(self.price))


class ServicePayload(_Payload):
    id: int
    title: str
    category: str | None = None
    description: str | None = None
    location: str | None = None
    work_specifications: List[WorkSpecificationPayload] | None = None

    def to_domain(self) -> Service:
        return Service(
            id=self.id,
            title=self.title,
            category=self.category or "",
            description=self.description or "",
            location=self.location,
            work_items=[spec.to_domain() for spec in self.work_specifications or []],
        )


class ServiceDetailPayload(_Payload):
    id: int
    title: str
    location: str | None = None


class BookingPayload(_Payload):
    id: int
    booking_date: str
    booking_time: str
    is_editable: bool = False
    status: BookingStatus
    price: Any = None
    service_detail: ServiceDetailPayload | None = None
    work_specifications: List[int] = Field(default_factory=list)

    @field_validator("work_specifications", mode="before")
    @classmethod
    def flatten_work_specifications(cls, value: Any) -> Any:
        """Accept either a list of ids or a list of nested objects."""
        if value is None:
            return []
        if isinstance(value, list):
            return [item.get("id") if isinstance(item, dict) else item for item in value]
        return value

    def to_domain(self) -> Booking:
        service = None
        if self.service_detail:
            service = ServiceSummary(
                id=self.service_detail.id,
                title=self.service_detail.title,
                location=self.service_detail.location,
            )
        return Booking(
            id=self.id,
            date=parse_calendar_date(self.booking_date),
            time=TimeOfDay.parse(self.booking_time),
            is_editable=self.is_editable,
            status=self.status,
            price_at_booking=parse_price(self.price) if self.price is not None else None,
            service=service,
            work_item_ids=list(self.work_specifications),
        )


class ConfirmationPayload(_Payload):
    id: int
    booking_date: str | None = None
    booking_time: str | None = None
    price: Any = None
    message: str = ""

    def to_domain(self, request: BookingRequest) -> Confirmation:
        """Fill in any field the backend did not echo back from the request."""
        return Confirmation(
            booking_id=self.id,
            date=parse_calendar_date(self.booking_date) if self.booking_date else request.date,
            time=TimeOfDay.parse(self.booking_time) if self.booking_time else request.time,
            total=parse_price(self.price) if self.price is not None else request.total,
            message=self.message,
        )


class LoginPayload(_Payload):
    access_token: str
    refresh_token: str | None = None
    message: str = ""

    def to_domain(self) -> AuthSession:
        return AuthSession(access_token=self.access_token, refresh_token=self.refresh_token)


class UserPayload(_Payload):
    username: str
    email: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    contact: str | None = None
    address: str | None = None
    gender: str | None = None

    def to_domain(self) -> UserProfile:
        return UserProfile(**self.model_dump())


def parse_model(model_cls: Type[ModelT], data: Any) -> ModelT:
    """
    Validate a decoded JSON value against a payload model.

    Raises:
        ParseError: If the payload does not match the expected shape
    """
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ParseError(
            f"Received malformed {model_cls.__name__} from the server "
            f"({exc.error_count()} error(s))."
        ) from exc


def parse_list(model_cls: Type[ModelT], data: Any) -> List[ModelT]:
    """Validate a JSON array where every element matches ``model_cls``."""
    if not isinstance(data, list):
        raise ParseError(f"Expected a list of {model_cls.__name__}, got {type(data).__name__}.")
    return [parse_model(model_cls, item) for item in data]
