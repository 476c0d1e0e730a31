"""
Tests for handyai/services/tools/registry.py and the CRM tool catalog.
"""
import pytest

from handyai.services.tools.crm_tools import CREATE_CUSTOMER_DEF, build_crm_registry, create_customer
from handyai.services.tools.registry import ToolRegistry
from handyai.services.tools.schema import ToolCategory, list_field_names

EXPECTED_TOOLS = {
    "create_customer",
    "get_customers",
    "update_customer",
    "delete_customer",
    "create_offer",
    "get_offers",
    "update_offer",
    "create_invoice",
    "get_invoices",
    "update_invoice_status",
    "create_appointment",
    "get_statistics",
}


class TestCrmCatalog:
    """The registry built at startup."""

    def test_contains_all_crm_tools(self, registry):
        """Should register exactly the twelve CRM tools."""
        assert len(registry) == 12
        assert {t.definition.name for t in registry.get_all_tools()} == EXPECTED_TOOLS

    def test_builds_independent_registries(self):
        """Should return a fresh registry per call."""
        assert build_crm_registry() is not build_crm_registry()

    def test_required_parameters_exist_in_input_model(self, registry):
        """Should only declare required parameters the argument model accepts."""
        for tool in registry.get_all_tools():
            accepted = set(list_field_names(tool.definition.input_model))
            required = tool.definition.tool_schema.parameters.get("required", [])
            assert set(required) <= accepted, tool.definition.name

    def test_declared_properties_exist_in_input_model(self, registry):
        """Should not advertise parameters the argument model would ignore."""
        for tool in registry.get_all_tools():
            accepted = set(list_field_names(tool.definition.input_model))
            properties = tool.definition.tool_schema.parameters.get("properties", {})
            assert set(properties) <= accepted, tool.definition.name

    def test_parameters_follow_the_input_model(self, registry):
        """Should advertise exactly the fields and required fields of the argument model."""
        for tool in registry.get_all_tools():
            model = tool.definition.input_model
            parameters = tool.definition.tool_schema.parameters
            aliases = {f.alias or name for name, f in model.model_fields.items()}
            required = {f.alias or name for name, f in model.model_fields.items() if f.is_required()}
            assert set(parameters["properties"]) == aliases, tool.definition.name
            assert set(parameters["required"]) == required, tool.definition.name

    def test_parameters_keep_german_descriptions(self, registry):
        properties = registry.get_tool("create_offer").definition.tool_schema.parameters["properties"]

        assert properties["customerId"]["description"] == "Kunden-ID (von get_customers)"
        assert properties["totalCost"] == {
            "type": "number",
            "minimum": 0,
            "default": 0,
            "description": "Gesamtkosten in Euro (Standard: 0)",
        }

    def test_every_tool_has_a_render_template(self, registry):
        for tool in registry.get_all_tools():
            assert tool.definition.render_template is not None
            assert tool.definition.failure_message

    def test_tools_by_category(self, registry):
        """Should group tools by category."""
        invoice_tools = {t.definition.name for t in registry.get_tools_by_category(ToolCategory.INVOICE)}

        assert invoice_tools == {"create_invoice", "get_invoices", "update_invoice_status"}

    def test_membership(self, registry):
        assert "get_statistics" in registry
        assert "send_email" not in registry
        assert registry.get_tool("send_email") is None


class TestRegistryFormats:
    """Tool descriptions for the different consumers."""

    def test_openai_format(self, registry):
        """Should wrap each schema as a function tool."""
        spec = registry.get_openai_tools_spec()
        create = next(t for t in spec if t["function"]["name"] == "create_customer")

        assert create["type"] == "function"
        assert create["function"]["parameters"]["required"] == ["firstName", "lastName"]

    def test_list_tools_format(self, registry):
        """Should expose name, description and inputSchema."""
        tools = registry.list_tools()
        offer = next(t for t in tools if t["name"] == "update_offer")

        assert set(offer) == {"name", "description", "inputSchema"}
        assert offer["inputSchema"]["properties"]["status"]["enum"] == [
            "DRAFT", "SENT", "ACCEPTED", "DECLINED"
        ]

    def test_tools_prompt(self, registry):
        """Should list every tool and the JSON call format for simulated tool calling."""
        prompt = registry.get_tools_prompt()

        for name in EXPECTED_TOOLS:
            assert f"Tool: {name}" in prompt
        assert '{"tool_calls": [{"name": "tool_name"' in prompt
        assert "firstName (string, Pflichtfeld)" in prompt


class TestRegistration:

    def test_duplicate_registration_raises(self):
        """Should refuse a second tool with the same name."""
        registry = ToolRegistry()
        registry.register_tool(CREATE_CUSTOMER_DEF, create_customer)

        with pytest.raises(ValueError, match="already registered"):
            registry.register_tool(CREATE_CUSTOMER_DEF, create_customer)
