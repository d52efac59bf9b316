"""
Identity schema read by the authorization core.

The rule catalog references these table and column names directly in
its SQL fragments, so renaming anything here is a breaking change.
UUID keys are stored in their canonical 36-character text form.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
)

metadata = MetaData()

# BIGINT keys that still autoincrement on SQLite.
ID = BigInteger().with_variant(Integer, "sqlite")
UUID_TEXT = String(36)


def _timestamps():
    return [
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    ]


users = Table(
    "users", metadata,
    Column("id", ID, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("session_ttl", Integer, nullable=False, default=0),
    Column("password_hash", String(200), nullable=False, default=""),
    Column("note", String, nullable=False, default=""),
    *_timestamps(),
)

organizations = Table(
    "organizations", metadata,
    Column("id", ID, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("display_name", String(100), nullable=False, default=""),
    Column("can_have_gateways", Boolean, nullable=False, default=False),
    *_timestamps(),
)

organization_user = Table(
    "organization_user", metadata,
    Column("id", ID, primary_key=True, autoincrement=True),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("user_id", ID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("is_device_admin", Boolean, nullable=False, default=False),
    Column("is_gateway_admin", Boolean, nullable=False, default=False),
    *_timestamps(),
    UniqueConstraint("organization_id", "user_id"),
)

network_server = Table(
    "network_server", metadata,
    Column("id", ID, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("server", String(255), nullable=False),
    *_timestamps(),
)

service_profile = Table(
    "service_profile", metadata,
    Column("service_profile_id", UUID_TEXT, primary_key=True),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("network_server_id", ID, ForeignKey("network_server.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

device_profile = Table(
    "device_profile", metadata,
    Column("device_profile_id", UUID_TEXT, primary_key=True),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("network_server_id", ID, ForeignKey("network_server.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

applications = Table(
    "applications", metadata,
    Column("id", ID, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("service_profile_id", UUID_TEXT, ForeignKey("service_profile.service_profile_id"), nullable=True),
    UniqueConstraint("organization_id", "name"),
)

devices = Table(
    "devices", metadata,
    Column("dev_eui", LargeBinary(8), primary_key=True),
    Column("application_id", ID, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("device_profile_id", UUID_TEXT, ForeignKey("device_profile.device_profile_id"), nullable=True),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

gateways = Table(
    "gateways", metadata,
    Column("mac", LargeBinary(8), primary_key=True),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("network_server_id", ID, ForeignKey("network_server.id"), nullable=False),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

multicast_group = Table(
    "multicast_group", metadata,
    Column("id", UUID_TEXT, primary_key=True),
    Column("application_id", ID, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

fuota_deployment = Table(
    "fuota_deployment", metadata,
    Column("id", UUID_TEXT, primary_key=True),
    Column("name", String(100), nullable=False, default=""),
    *_timestamps(),
)

fuota_deployment_device = Table(
    "fuota_deployment_device", metadata,
    Column("fuota_deployment_id", UUID_TEXT, ForeignKey("fuota_deployment.id", ondelete="CASCADE"), primary_key=True),
    Column("dev_eui", LargeBinary(8), ForeignKey("devices.dev_eui", ondelete="CASCADE"), primary_key=True, index=True),
)

api_key = Table(
    "api_key", metadata,
    Column("id", UUID_TEXT, primary_key=True),
    Column("name", String(100), nullable=False),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("organization_id", ID, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True),
    Column("application_id", ID, ForeignKey("applications.id", ondelete="CASCADE"), nullable=True, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "(is_admin = true and organization_id is null and application_id is null)"
        " or (is_admin = false and organization_id is not null and application_id is null)"
        " or (is_admin = false and organization_id is null and application_id is not null)",
        name="api_key_scope_triple",
    ),
)


def create_schema(engine) -> None:
    """Create every identity table that does not exist yet."""
    metadata.create_all(engine)
