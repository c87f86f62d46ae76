"""Parse the free-text shipping address stored on orders."""

from dissonant.core.exceptions import AddressParseError
from dissonant.schemas.address import Address


def _split_state_zip(value: str) -> tuple[str | None, str | None]:
    parts = value.strip().split(" ")
    if len(parts) < 2:
        return None, None
    return parts[0].strip(), " ".join(parts[1:]).strip()


def parse_address(address: str) -> Address:
    """Split an order address into label fields.

    Accepts either newline-separated text::

        Jane Doe
        1 Main St
        Austin, TX 78701

    or the same parts on one line separated by ``", "``.

    Raises:
        AddressParseError: a required part is missing.
    """
    if not isinstance(address, str) or not address.strip():
        raise AddressParseError("Address is empty")

    name = street = city = state = zip_code = None
    lines = [line for line in address.strip().split("\n") if line.strip()]

    if len(lines) >= 3:
        name = lines[0].strip()
        street = lines[1].strip()
        city_state_zip = lines[2].split(", ")
        if len(city_state_zip) >= 2:
            city = city_state_zip[0].strip()
            state, zip_code = _split_state_zip(city_state_zip[1])
    else:
        parts = address.strip().split(", ")
        if len(parts) >= 4:
            name = parts[0].strip()
            street = parts[1].strip()
            city = parts[2].strip()
            state, zip_code = _split_state_zip(parts[3])

    if not (name and street and city and state and zip_code):
        raise AddressParseError(
            f'Missing required address fields. Got: name="{name}", street="{street}", '
            f'city="{city}", state="{state}", zip="{zip_code}"'
        )

    return Address(name=name, street1=street, city=city, state=state, zip=zip_code, country="US")
