import random
import re
from pathlib import Path
from typing import Iterable

from pydantic import AnyUrl, TypeAdapter, ValidationError

from squish.exceptions import InfraError, InvalidInput

ALIAS_NUMBER_LIMIT = 1000
DEFAULT_SCHEME = "https"
DEFAULT_ALLOWED_SCHEMES = ("https", "http")

SCHEME_PREFIX = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):(.*)$", re.DOTALL)
PORT_SUFFIX = re.compile(r"^[0-9]+(?:[/?#]|$)")

_url_adapter = TypeAdapter(AnyUrl)


def title_case(word: str) -> str:
    """Uppercase the first character, leave the rest untouched."""

    return word[:1].upper() + word[1:]


def read_word_list(path: str | Path) -> list[str]:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise InfraError(f"could not read word list {path}: {exc}") from exc
    return content.splitlines()


class NameGenerator:
    """Builds candidate aliases such as ``Quietotter42``.

    Candidates are not unique; the caller checks them against the store.
    """

    def __init__(self, adjectives: Iterable[str], nouns: Iterable[str]):
        self.adjectives = [word.strip() for word in adjectives if word.strip()]
        self.nouns = [word.strip() for word in nouns if word.strip()]

        if not self.adjectives:
            raise InfraError("there are no adjectives to generate aliases from")
        if not self.nouns:
            raise InfraError("there are no nouns to generate aliases from")

    @classmethod
    def from_files(cls, adjectives_path: str | Path, nouns_path: str | Path) -> "NameGenerator":
        return cls(read_word_list(adjectives_path), read_word_list(nouns_path))

    @property
    def keyspace(self) -> int:
        return len(self.adjectives) * len(self.nouns) * ALIAS_NUMBER_LIMIT

    def generate(self, rng: random.Random) -> str:
        adjective = rng.choice(self.adjectives)
        noun = rng.choice(self.nouns)
        number = rng.randrange(ALIAS_NUMBER_LIMIT)
        return f"{title_case(adjective)}{noun}{number}"


def normalize_url(
    raw_input: str,
    allowed_schemes: Iterable[str] = DEFAULT_ALLOWED_SCHEMES,
    default_scheme: str = DEFAULT_SCHEME,
) -> str:
    """Return ``raw_input`` as an absolute URL, prepending the default scheme.

    Inputs that already name a scheme outside ``allowed_schemes`` are rejected
    rather than rewritten. The returned string is the input as typed (plus the
    prepended scheme), not a re-serialized form, so it round-trips exactly.
    """

    candidate = raw_input.strip()
    if not candidate:
        raise InvalidInput(raw_input, "input is empty")

    allowed = {scheme.lower() for scheme in allowed_schemes}
    match = SCHEME_PREFIX.match(candidate)
    if match is None or PORT_SUFFIX.match(match.group(2)):
        # no scheme at all, or a bare host:port such as localhost:8080
        candidate = f"{default_scheme}://{candidate}"
    else:
        scheme, rest = match.groups()
        if scheme.lower() not in allowed:
            raise InvalidInput(raw_input, f"scheme '{scheme}' is not allowed")
        if not rest.startswith("//"):
            raise InvalidInput(raw_input, f"scheme '{scheme}' must be followed by '//'")

    try:
        parsed = _url_adapter.validate_python(candidate)
    except ValidationError as exc:
        raise InvalidInput(raw_input, exc.errors()[0]["msg"]) from exc

    if not parsed.host:
        raise InvalidInput(raw_input, "URL has no host")

    return candidate
