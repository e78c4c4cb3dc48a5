"""Digest access authentication (RFC 7616) challenge codec.

Parses a ``WWW-Authenticate: Digest ...`` challenge and computes the
matching ``Authorization`` header. The codec is pure: it performs no I/O
and keeps no state beyond the nonce counter of a single challenge.
"""

import hashlib
import re
import secrets
from dataclasses import dataclass

from atlas_billing.fetch.errors import AuthProtocolError


DIGEST_SCHEME = "digest"

# Canonical algorithm name -> (hashlib name, session variant)
_ALGORITHMS: dict[str, tuple[str, bool]] = {
    "MD5": ("md5", False),
    "MD5-sess": ("md5", True),
    "SHA-256": ("sha256", False),
    "SHA-256-sess": ("sha256", True),
    "SHA-512-256": ("sha512_256", False),
    "SHA-512-256-sess": ("sha512_256", True),
}
_ALGORITHM_LOOKUP = {name.upper(): name for name in _ALGORITHMS}

QOP_AUTH = "auth"
QOP_AUTH_INT = "auth-int"

_PARAM_RE = re.compile(
    r"[\s,]*"
    r"([!#$%&'*+.^_`|~0-9A-Za-z-]+)"
    r"\s*=\s*"
    r'(?:"((?:[^"\\]|\\.)*)"|([^\s,"]+))'
    r"\s*(?:,|$)"
)
_ESCAPE_RE = re.compile(r"\\(.)")


def _unquote(value: str) -> str:
    return _ESCAPE_RE.sub(r"\1", value)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_params(text: str) -> dict[str, str]:
    """Split ``name=value`` pairs of an auth-param list.

    Args:
        text: Everything after the auth scheme token.

    Returns:
        Mapping of lower-cased parameter names to unquoted values.

    Raises:
        AuthProtocolError: If the list is not well formed.
    """
    params: dict[str, str] = {}
    pos = 0
    while text[pos:].strip(" \t,"):
        match = _PARAM_RE.match(text, pos)
        if match is None:
            msg = f"Malformed digest challenge near {text[pos:pos + 20]!r}"
            raise AuthProtocolError(msg)
        name, quoted, token = match.groups()
        params[name.lower()] = _unquote(quoted) if quoted is not None else token
        pos = match.end()
    return params


@dataclass(frozen=True)
class DigestResponse:
    """Computed digest credentials for one request."""

    username: str
    realm: str
    nonce: str
    uri: str
    response: str
    algorithm: str
    qop: str | None = None
    nc: str | None = None
    cnonce: str | None = None
    opaque: str | None = None
    userhash: bool = False

    def to_header(self) -> str:
        """Render the ``Authorization`` header value."""
        parts = [
            f"username={_quote(self.username)}",
            f"realm={_quote(self.realm)}",
            f"nonce={_quote(self.nonce)}",
            f"uri={_quote(self.uri)}",
            f"response={_quote(self.response)}",
            f"algorithm={self.algorithm}",
        ]
        if self.qop is not None:
            parts.append(f"qop={self.qop}")
            parts.append(f"nc={self.nc}")
            parts.append(f"cnonce={_quote(self.cnonce or '')}")
        if self.opaque is not None:
            parts.append(f"opaque={_quote(self.opaque)}")
        if self.userhash:
            parts.append("userhash=true")
        return "Digest " + ", ".join(parts)


@dataclass
class Challenge:
    """Parsed Digest challenge.

    Lives for a single fetch. ``nc`` counts the responses computed against
    this challenge's nonce so a repeated ``respond`` never reuses a count.
    """

    realm: str
    nonce: str
    opaque: str | None = None
    qop: tuple[str, ...] = ()
    algorithm: str = "MD5"
    stale: bool = False
    userhash: bool = False
    charset: str | None = None
    domain: str | None = None
    nc: int = 0

    @property
    def is_session(self) -> bool:
        """Whether the negotiated algorithm is a ``-sess`` variant."""
        return _ALGORITHMS[self.algorithm][1]

    def select_qop(self) -> str | None:
        """Pick the quality of protection to answer with.

        Returns:
            ``auth`` when offered, else ``auth-int``, or None when the
            challenge carries no qop (RFC 2069 compatibility).

        Raises:
            AuthProtocolError: If only unknown qop values are offered.
        """
        if not self.qop:
            return None
        if QOP_AUTH in self.qop:
            return QOP_AUTH
        if QOP_AUTH_INT in self.qop:
            return QOP_AUTH_INT
        msg = f"Unsupported qop options: {', '.join(self.qop)}"
        raise AuthProtocolError(msg)

    def _hash(self, data: str | bytes) -> str:
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            digest = hashlib.new(_ALGORITHMS[self.algorithm][0], data)
        except ValueError as exc:
            msg = f"Hash function for {self.algorithm} is unavailable: {exc}"
            raise AuthProtocolError(msg) from exc
        return digest.hexdigest()

    def respond(
        self,
        username: str,
        password: str,
        method: str,
        uri: str,
        body: bytes = b"",
        cnonce: str | None = None,
    ) -> DigestResponse:
        """Compute the digest response for one request.

        Args:
            username: Public API key.
            password: Private API key.
            method: HTTP method of the request being authorized.
            uri: Request target exactly as sent.
            body: Request body, only hashed for ``auth-int``.
            cnonce: Client nonce; a random one is generated when omitted.

        Returns:
            DigestResponse ready to render as a header.

        Raises:
            AuthProtocolError: If the challenge cannot be answered.
        """
        qop = self.select_qop()
        self.nc += 1
        nc_value = f"{self.nc:08x}"
        if cnonce is None:
            cnonce = secrets.token_hex(16)

        ha1 = self._hash(f"{username}:{self.realm}:{password}")
        if self.is_session:
            ha1 = self._hash(f"{ha1}:{self.nonce}:{cnonce}")

        if qop == QOP_AUTH_INT:
            ha2 = self._hash(f"{method}:{uri}:{self._hash(body)}")
        else:
            ha2 = self._hash(f"{method}:{uri}")

        if qop is None:
            response = self._hash(f"{ha1}:{self.nonce}:{ha2}")
        else:
            response = self._hash(
                f"{ha1}:{self.nonce}:{nc_value}:{cnonce}:{qop}:{ha2}"
            )

        sent_username = (
            self._hash(f"{username}:{self.realm}") if self.userhash else username
        )
        return DigestResponse(
            username=sent_username,
            realm=self.realm,
            nonce=self.nonce,
            uri=uri,
            response=response,
            algorithm=self.algorithm,
            qop=qop,
            nc=nc_value if qop else None,
            cnonce=cnonce if qop else None,
            opaque=self.opaque,
            userhash=self.userhash,
        )


def parse_challenge(header: str) -> Challenge:
    """Parse a ``WWW-Authenticate`` Digest challenge.

    Args:
        header: Raw header value, e.g. ``Digest realm="x", nonce="n1"``.

    Returns:
        Parsed Challenge with a fresh nonce counter.

    Raises:
        AuthProtocolError: If the header is not a well-formed Digest
            challenge or names an unsupported algorithm.
    """
    scheme, _, rest = header.strip().partition(" ")
    if scheme.lower() != DIGEST_SCHEME:
        msg = f"Expected Digest challenge, got scheme {scheme!r}"
        raise AuthProtocolError(msg)

    params = _parse_params(rest)
    missing = [name for name in ("realm", "nonce") if name not in params]
    if missing:
        msg = f"Digest challenge missing required parameter(s): {', '.join(missing)}"
        raise AuthProtocolError(msg)
    if not params["nonce"]:
        msg = "Digest challenge has an empty nonce"
        raise AuthProtocolError(msg)

    raw_algorithm = params.get("algorithm", "MD5")
    algorithm = _ALGORITHM_LOOKUP.get(raw_algorithm.upper())
    if algorithm is None:
        msg = f"Unsupported digest algorithm {raw_algorithm!r}"
        raise AuthProtocolError(msg)

    qop = tuple(
        option.strip().lower()
        for option in params.get("qop", "").split(",")
        if option.strip()
    )

    return Challenge(
        realm=params["realm"],
        nonce=params["nonce"],
        opaque=params.get("opaque"),
        qop=qop,
        algorithm=algorithm,
        stale=params.get("stale", "").lower() == "true",
        userhash=params.get("userhash", "").lower() == "true",
        charset=params.get("charset"),
        domain=params.get("domain"),
    )


def select_digest_challenge(headers: list[str]) -> str | None:
    """Pick the Digest challenge out of possibly several WWW-Authenticate values.

    Args:
        headers: All WWW-Authenticate header values of a response.

    Returns:
        The first value using the Digest scheme, or the first value when
        none does (so parsing reports the unexpected scheme), or None.
    """
    for value in headers:
        if value.strip().lower().startswith(DIGEST_SCHEME):
            return value
    return headers[0] if headers else None
