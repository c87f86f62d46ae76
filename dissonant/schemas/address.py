"""Postal address and parcel schemas sent to the label endpoint."""

from dissonant.schemas.common import BaseSchema


class Address(BaseSchema):
    """A US postal address in the courier's field layout."""

    name: str
    street1: str
    city: str
    state: str
    zip: str
    country: str = "US"


class Parcel(BaseSchema):
    """Parcel dimensions as strings, the way the courier API expects them."""

    length: str = "8"
    width: str = "6"
    height: str = "0.5"
    distance_unit: str = "in"
    weight: str = "4.9"
    mass_unit: str = "oz"
