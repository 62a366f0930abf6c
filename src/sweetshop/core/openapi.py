"""OpenAPI 3.1 and Swagger UI: /openapi.json and /docs. Payload schemas come from pydantic."""
from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

REF_TEMPLATE = "#/components/schemas/{model}"


def schema_from_dataclass(cls: type) -> dict[str, Any]:
    """JSON schema of a payload dataclass with camelCase property names; shared types sit in $defs."""
    return TypeAdapter(cls).json_schema(by_alias=True, ref_template=REF_TEMPLATE)


def parameters_from_dataclass(cls: type) -> list[dict[str, Any]]:
    """OpenAPI query parameters for GET queries, one per payload field."""
    schema = schema_from_dataclass(cls)
    required = set(schema.get("required", ()))
    return [
        {"name": name, "in": "query", "required": name in required, "schema": prop}
        for name, prop in schema.get("properties", {}).items()
    ]


def build_openapi_spec(
    routes: list[Any],
    *,
    title: str = "API",
    version: str = "0.1.0",
    security_schemes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build OpenAPI 3.1 spec from the application's route records."""
    paths: dict[str, Any] = {}
    schemas: dict[str, Any] = {}
    for route in routes:
        if not route.include_in_schema:
            continue
        item = paths.setdefault(route.path, {})
        for method in route.methods:
            method_lower = method.lower()
            status = str(route.status_code)
            op: dict[str, Any] = {
                "summary": route.summary or f"{method} {route.path}",
                "tags": list(route.tags or ["default"]),
                "responses": {
                    status: {
                        "description": "No Content" if status == "204" else "OK",
                    },
                    "400": {"description": "Validation error or business rule violation"},
                },
            }
            if status != "204":
                op["responses"][status]["content"] = {"application/json": {"schema": {"type": "object"}}}
            if method_lower == "get" and route.parameters:
                op["parameters"] = route.parameters
            elif method_lower == "post" and route.body_schema:
                body = dict(route.body_schema)
                schemas.update(body.pop("$defs", {}))
                op["requestBody"] = {
                    "required": bool(body.get("required")),
                    "content": {"application/json": {"schema": body}},
                }
            if route.security:
                op["security"] = route.security
                op["responses"]["401"] = {"description": "Authentication required"}
                op["responses"]["403"] = {"description": "Missing role"}
            item[method_lower] = op
    spec: dict[str, Any] = {
        "openapi": "3.1.0",
        "info": {"title": title, "version": version},
        "paths": paths,
    }
    components: dict[str, Any] = {}
    if schemas:
        components["schemas"] = schemas
    if security_schemes:
        components["securitySchemes"] = security_schemes
    if components:
        spec["components"] = components
    return spec


SWAGGER_UI_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <link rel="stylesheet" type="text/css" href="https://unpkg.com/swagger-ui-dist@5/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    SwaggerUIBundle({{
      url: "{openapi_path}",
      dom_id: "#swagger-ui",
    }});
  </script>
</body>
</html>
"""
