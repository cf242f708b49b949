from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import AfterValidator, AnyHttpUrl, EmailStr, Field, StringConstraints, TypeAdapter


_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


def _check_url(value: str) -> str:
    if value:
        _URL_ADAPTER.validate_python(value)
    return value


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
CurrencyCode = Annotated[str, StringConstraints(pattern=r"^[A-Za-z]{3}$", to_upper=True)]
OptionalEmail = Union[EmailStr, Literal[""]]
WebsiteUrl = Annotated[str, AfterValidator(_check_url)]
NonNegativeCents = Annotated[int, Field(ge=0)]
