"""Authentication settings shared by client and server configurations."""

from dataclasses import dataclass, field

from .consts import AuthMethod


@dataclass
class AuthBaseConfig:
    """Which authentication method is used and which messages carry credentials."""

    # "token" puts a key derived from the shared token into the login message;
    # "oidc" obtains an OpenID Connect token instead.
    authentication_method: str = AuthMethod.TOKEN.value
    # Whether heartbeats carry authentication as well.
    authenticate_heartbeats: bool = False
    # Whether new work connections carry authentication as well.
    authenticate_new_work_conns: bool = False


@dataclass
class TokenConfig:
    """The shared token; client and server must hold the same value."""

    token: str = ""


@dataclass
class AuthClientConfig(AuthBaseConfig, TokenConfig):
    """Authentication settings of a client, including its OIDC credentials."""

    oidc_client_id: str = ""
    oidc_client_secret: str = ""
    oidc_audience: str = ""
    oidc_scope: str = ""
    oidc_token_endpoint_url: str = ""
    # Extra parameters sent to the token endpoint, read from "oidc_additional_" keys.
    oidc_additional_endpoint_params: dict[str, str] = field(default_factory=dict)


@dataclass
class AuthServerConfig(AuthBaseConfig, TokenConfig):
    """Authentication settings of a server, including how OIDC tokens are checked."""

    oidc_issuer: str = ""
    # When empty, the audience of incoming tokens is not checked.
    oidc_audience: str = ""
    oidc_skip_expiry_check: bool = False
    oidc_skip_issuer_check: bool = False