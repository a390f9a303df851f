import pytest

from inventario.core.exceptions import InvalidTenantError
from inventario.core.middleware import tenant_hint_from_header
from inventario.core.tenant import TenantHints, TenantResolver, tenant_resolver

from conftest import make_token


@pytest.fixture
def resolver():
    return TenantResolver(
        schemas={"principal": "inventario_principal", "sucursal": "inventario_sucursal"},
        default="principal",
    )


def test_user_hint_wins_over_middleware_hint(resolver):
    hints = TenantHints(user_tenant="sucursal", middleware_tenant="principal")
    assert resolver.resolve(hints) == "sucursal"


def test_middleware_hint_used_without_user_hint(resolver):
    assert resolver.resolve(TenantHints(middleware_tenant="sucursal")) == "sucursal"


def test_default_without_hints(resolver):
    assert resolver.resolve(TenantHints()) == "principal"


def test_unknown_hint_falls_back_to_default(resolver):
    assert resolver.resolve(TenantHints(user_tenant="bodega-x")) == "principal"
    # La pista presente de mayor precedencia decide, aunque sea inválida
    assert resolver.resolve(TenantHints(user_tenant="bodega-x", middleware_tenant="sucursal")) == "principal"


def test_schema_lookup(resolver):
    assert resolver.schema_for("principal") == "inventario_principal"
    assert resolver.schema_for("sucursal") == "inventario_sucursal"
    with pytest.raises(InvalidTenantError) as exc:
        resolver.schema_for("otro")
    assert exc.value.detail["code"] == "INVALID_OPERATION"


def test_is_valid(resolver):
    assert resolver.is_valid("principal")
    assert not resolver.is_valid("otro")
    assert not resolver.is_valid(None)


def test_default_must_be_whitelisted():
    with pytest.raises(InvalidTenantError):
        TenantResolver(schemas={"principal": "inventario_principal"}, default="sucursal")


def test_available_tenants_from_settings():
    tenants = {item["id"]: item for item in tenant_resolver.available_tenants()}
    assert set(tenants) == {"principal", "sucursal"}
    assert tenants["sucursal"]["esquema"] == "inventario_sucursal"
    assert tenants["principal"]["nombre"] == "Bodega Principal"


def test_middleware_hint_from_bearer_token():
    assert tenant_hint_from_header(f"Bearer {make_token(tenant='sucursal')}") == "sucursal"
    assert tenant_hint_from_header(f"Bearer {make_token()}") is None


def test_middleware_hint_ignores_bad_tokens():
    assert tenant_hint_from_header(None) is None
    assert tenant_hint_from_header("Basic abc") is None
    assert tenant_hint_from_header("Bearer not-a-jwt") is None
