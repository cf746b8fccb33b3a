"""Value generation using Faker."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

from faker import Faker

from .errors import OverrideError
from .schemas import ColumnInfo, EnumMap

Producer = Callable[[Faker], Any]


def _slug(fake: Faker) -> str:
    return fake.slug(" ".join(fake.words(nb=3))).lower()


# Named generators usable from overrides and column-name hints
BUILTIN_GENERATORS: dict[str, Producer] = {
    "email": lambda fake: fake.email(),
    "first_name": lambda fake: fake.first_name(),
    "last_name": lambda fake: fake.last_name(),
    "full_name": lambda fake: fake.name(),
    "username": lambda fake: fake.user_name(),
    "phone": lambda fake: fake.phone_number(),
    "address": lambda fake: fake.street_address(),
    "city": lambda fake: fake.city(),
    "state": lambda fake: fake.state(),
    "zip": lambda fake: fake.postcode(),
    "country": lambda fake: fake.country(),
    "company": lambda fake: fake.company(),
    "title": lambda fake: fake.sentence(nb_words=fake.random_int(min=3, max=6)),
    "description": lambda fake: fake.paragraph(),
    "url": lambda fake: fake.url(),
    "slug": _slug,
    "uuid": lambda fake: fake.uuid4(),
    "ip": lambda fake: fake.ipv4(),
    "word": lambda fake: fake.word(),
    "sentence": lambda fake: fake.sentence(),
}

# Checked in order against the lower-cased column name; first match wins
NAME_HINTS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"email"), "email"),
    (re.compile(r"first_name|firstname|given_name"), "first_name"),
    (re.compile(r"last_name|lastname|family_name|surname"), "last_name"),
    (re.compile(r"username|user_name|login"), "username"),
    (re.compile(r"full_name|name"), "full_name"),
    (re.compile(r"phone|phone_number|mobile"), "phone"),
    (re.compile(r"address"), "address"),
    (re.compile(r"city"), "city"),
    (re.compile(r"state|province|region"), "state"),
    (re.compile(r"zip|postal"), "zip"),
    (re.compile(r"country"), "country"),
    (re.compile(r"company|org|organization"), "company"),
    (re.compile(r"title"), "title"),
    (re.compile(r"description|bio|notes|summary"), "description"),
    (re.compile(r"url|website"), "url"),
    (re.compile(r"slug"), "slug"),
]

# Keyword -> kind, checked in order against the normalized type
TYPE_KINDS: list[tuple[tuple[str, ...], str]] = [
    (("uuid",), "uuid"),
    (("boolean",), "boolean"),
    (("integer", "bigint", "smallint"), "integer"),
    (("numeric", "decimal"), "numeric"),
    (("real", "double"), "float"),
    (("timestamp",), "timestamp"),
    (("interval",), "interval"),
    (("date",), "date"),
    (("time",), "time"),
    (("json",), "json"),
    (("bytea",), "binary"),
    (("character", "text"), "text"),
]

NETWORK_TYPES = ("inet", "cidr")

# Faker methods that reseed or configure rather than produce values
RESERVED_METHODS = {"seed", "seed_instance", "seed_locale", "add_provider", "set_formatter"}

# Runs without an explicit anchor are offset from this date by their seed
DEFAULT_REFERENCE_TIME = datetime(2024, 1, 1)


def classify_type(normalized_type: str) -> str | None:
    """Map a normalized SQL type to a generation kind, or None if unknown."""
    for keywords, kind in TYPE_KINDS:
        if any(keyword in normalized_type for keyword in keywords):
            return kind
    return None


def clamp_string(value: str, max_length: int | None) -> str:
    """Truncate a string to the column length, keeping at least one character."""
    if not max_length or len(value) <= max_length:
        return value
    return value[:max(1, max_length)]


def seed_reference_time(seed: int | None) -> datetime:
    """Fixed temporal anchor for a seed, so generated dates never follow the clock."""
    return DEFAULT_REFERENCE_TIME + timedelta(days=(seed or 0) % 365)


def lookup_generator(name: str, reference: Faker | None = None) -> Producer:
    """
    Resolve a generator name to a producer.

    Accepts built-in names, public Faker provider methods, and dotted paths
    whose last segment is one of those (e.g. ``internet.email``). Provider
    methods are looked up on ``reference``, or on a fresh Faker when omitted.

    Raises:
        OverrideError: If the name does not resolve to a callable generator
    """
    if name in BUILTIN_GENERATORS:
        return BUILTIN_GENERATORS[name]

    attr = name.rsplit(".", 1)[-1]
    if attr in BUILTIN_GENERATORS:
        return BUILTIN_GENERATORS[attr]
    if not attr or attr.startswith("_") or attr in RESERVED_METHODS:
        raise OverrideError(f"Invalid generator override: {name}")

    if reference is None:
        reference = Faker()
    try:
        candidate = getattr(reference, attr)
    except AttributeError:
        candidate = None
    if not callable(candidate):
        raise OverrideError(f"Invalid generator override: {name}")

    return lambda fake: getattr(fake, attr)()


@dataclass(frozen=True)
class ColumnOverride:
    """A validated per-column override."""
    values: tuple | None = None
    generator: str | None = None
    producer: Producer | None = None


def parse_override(key: str, raw: Any, reference: Faker | None = None) -> ColumnOverride:
    """Validate a raw override mapping into a ColumnOverride."""
    if isinstance(raw, ColumnOverride):
        return raw
    if not isinstance(raw, dict):
        raise OverrideError(f"Override for {key} must be a mapping")

    values = raw.get("values")
    if values is not None:
        if not isinstance(values, (list, tuple)) or not values:
            raise OverrideError(f"Override values for {key} must be a non-empty list")
        return ColumnOverride(values=tuple(values))

    # "faker" is an older spelling of "generator"
    name = raw.get("generator") or raw.get("faker")
    if not name:
        raise OverrideError(f"Override for {key} needs 'values' or 'generator'")
    return ColumnOverride(generator=name, producer=lookup_generator(str(name), reference))


def resolve_overrides(raw: dict[str, Any] | None) -> dict[str, ColumnOverride]:
    """Validate every override up front so bad names fail before seeding."""
    if not raw:
        return {}
    reference = Faker()
    return {key: parse_override(key, spec, reference) for key, spec in raw.items()}


class ValueGenerator:
    """Generates one synthetic value per column from a seeded Faker instance."""

    def __init__(
        self,
        seed: int | None = None,
        enums: EnumMap | None = None,
        reference_time: datetime | None = None,
    ):
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)
        self.enums: EnumMap = dict(enums or {})
        # Temporal ranges are anchored here so a seed replays identically
        self.reference_time = (reference_time or seed_reference_time(seed)).replace(microsecond=0)
        self._handlers: dict[str, Callable[[ColumnInfo], Any]] = {
            "uuid": self._gen_uuid,
            "boolean": self._gen_boolean,
            "integer": self._gen_integer,
            "numeric": self._gen_numeric,
            "float": self._gen_float,
            "timestamp": self._gen_timestamp,
            "interval": self._gen_interval,
            "date": self._gen_date,
            "time": self._gen_time,
            "json": self._gen_json,
            "binary": self._gen_binary,
            "text": self._gen_text,
        }

    @property
    def random(self):
        """The random source shared by everything in a run."""
        return self.fake.random

    def set_enums(self, enums: EnumMap) -> None:
        self.enums = dict(enums)

    def choice(self, values):
        return values[self.fake.random_int(min=0, max=len(values) - 1)]

    def generate(
        self,
        column: ColumnInfo,
        override: ColumnOverride | None = None,
        schema: str | None = None,
    ) -> Any:
        """Generate a value for a column, honoring an override when given."""
        if override is not None:
            if override.values:
                return self.choice(override.values)
            if override.producer is not None:
                return override.producer(self.fake)
            raise OverrideError(f"Invalid generator override for {column.name}")

        if column.is_array:
            element = column.element_column()
            length = self.fake.random_int(min=1, max=3)
            return [self.generate(element, schema=schema) for _ in range(length)]

        labels = self._enum_labels(column.udt_name, schema)
        if labels:
            return self.choice(labels)

        normalized = column.normalized_type
        if any(net in normalized for net in NETWORK_TYPES):
            return self.fake.ipv4()
        if "macaddr" in normalized:
            return self.fake.mac_address()

        kind = classify_type(normalized)
        if kind in ("text", None):
            hinted = self._generate_from_hints(column.name)
            if hinted is not None:
                return clamp_string(hinted, column.max_length)

        if kind is None:
            return clamp_string(self.fake.word(), column.max_length)
        return self._handlers[kind](column)

    def _enum_labels(self, udt_name: str, schema: str | None) -> list[str] | None:
        if not self.enums or not udt_name:
            return None
        labels = self.enums.get(udt_name)
        if not labels and schema:
            labels = self.enums.get(f"{schema}.{udt_name}")
        return labels or None

    def _generate_from_hints(self, column_name: str) -> str | None:
        normalized = column_name.lower()
        for pattern, key in NAME_HINTS:
            if pattern.search(normalized):
                return BUILTIN_GENERATORS[key](self.fake)
        return None

    def _gen_uuid(self, column: ColumnInfo) -> str:
        return self.fake.uuid4()

    def _gen_boolean(self, column: ColumnInfo) -> bool:
        return self.fake.boolean()

    def _gen_integer(self, column: ColumnInfo) -> int:
        return self.fake.random_int(min=1, max=10000)

    def _gen_numeric(self, column: ColumnInfo) -> Decimal:
        """Generate a decimal whose digits fit the column's precision and scale."""
        precision = column.numeric_precision if column.numeric_precision is not None else 8
        scale = column.numeric_scale if column.numeric_scale is not None else 2
        integer_digits = max(0, precision - scale)

        whole = self.fake.random_int(min=0, max=10 ** integer_digits - 1)
        if scale <= 0:
            return Decimal(whole)
        fraction = self.fake.random_int(min=0, max=10 ** scale - 1)
        return Decimal(f"{whole}.{fraction:0{scale}d}")

    def _gen_float(self, column: ColumnInfo) -> float:
        return round(self.random.uniform(0, 10000), 4)

    def _gen_timestamp(self, column: ColumnInfo):
        tzinfo = timezone.utc if "with time zone" in column.normalized_type else None
        return self.fake.date_time_between(
            start_date=self.reference_time - timedelta(days=5 * 365),
            end_date=self.reference_time,
            tzinfo=tzinfo,
        )

    def _gen_interval(self, column: ColumnInfo) -> timedelta:
        return timedelta(seconds=self.fake.random_int(min=60, max=30 * 24 * 3600))

    def _gen_date(self, column: ColumnInfo):
        today = self.reference_time.date()
        return self.fake.date_between(start_date=today - timedelta(days=5 * 365), end_date=today)

    def _gen_time(self, column: ColumnInfo):
        return self.fake.time_object(end_datetime=self.reference_time)

    def _gen_json(self, column: ColumnInfo) -> dict[str, Any]:
        return {
            "id": self.fake.uuid4(),
            "label": self.fake.word(),
            "createdAt": self.fake.date_time_between(
                start_date=self.reference_time - timedelta(days=30),
                end_date=self.reference_time,
            ).isoformat(),
        }

    def _gen_binary(self, column: ColumnInfo) -> bytes:
        return self.fake.pystr(min_chars=16, max_chars=16).encode()

    def _gen_text(self, column: ColumnInfo) -> str:
        words = self.fake.words(nb=self.fake.random_int(min=1, max=4))
        return clamp_string(" ".join(words), column.max_length)
