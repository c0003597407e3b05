"""
Tests for agent id normalization and the agent registry.
"""

from prompt_matrix.core.registry import AgentRegistry, custom_agent_id, normalize_agent_id
from prompt_matrix.models import AgentDescriptor, CustomAgentConfig


def descriptor(agent_id, name="Agent"):
    return AgentDescriptor(id=agent_id, system_prompt="You are helpful.", display_name=name)


def test_normalize_adds_single_prefix():
    assert normalize_agent_id("writer") == "CUSTOM_writer"
    assert normalize_agent_id("CUSTOM_writer") == "CUSTOM_writer"
    assert normalize_agent_id("custom_CUSTOM_writer") == "CUSTOM_writer"


def test_normalize_keeps_builtin_ids():
    for agent_id in ("X0_OPTIMIZER", "X0_REVERSE", "X1_BASIC", "X4_SCENARIO", "CONDUCTOR"):
        assert normalize_agent_id(agent_id) == agent_id


def test_normalize_empty_ids():
    assert normalize_agent_id("") == ""
    assert normalize_agent_id("CUSTOM_") == ""
    assert normalize_agent_id("custom_CUSTOM_") == ""


def test_register_replaces_existing_entry():
    registry = AgentRegistry()
    assert registry.register(descriptor("writer", "First")) == "CUSTOM_writer"
    assert registry.register(descriptor("CUSTOM_writer", "Second")) == "CUSTOM_writer"

    assert len(registry) == 1
    assert registry.get("CUSTOM_writer").display_name == "Second"


def test_register_empty_id_is_skipped():
    registry = AgentRegistry()
    assert registry.register(descriptor("CUSTOM_")) is None
    assert len(registry) == 0


def test_lookup_is_exact_match():
    registry = AgentRegistry([descriptor("writer")])
    assert registry.get("writer") is None
    assert "CUSTOM_writer" in registry
    assert registry.get_agent("CUSTOM_writer") is None


def test_router_registers_builtins_and_custom_agents(router):
    builtin_ids = {"X0_OPTIMIZER", "X0_REVERSE", "X1_BASIC", "X4_SCENARIO"}
    assert set(router.registry.ids()) == builtin_ids

    agent_id = router.register_custom_agent(CustomAgentConfig(id="writer", name="写手", prompt="你是写手"))
    assert agent_id == "CUSTOM_writer"
    assert {d.id for d in router.list_agents()} == builtin_ids | {"CUSTOM_writer"}

    # Registering again with a doubled prefix replaces the same entry
    router.register_custom_agent(CustomAgentConfig(id="CUSTOM_CUSTOM_writer", name="新写手", prompt="你是写手"))
    assert len(router.list_agents()) == 5
    assert router.get_agent_name("CUSTOM_writer") == "新写手"


def test_router_ignores_custom_agent_without_id(router):
    assert router.register_custom_agent(CustomAgentConfig(id="CUSTOM_", name="x", prompt="p")) is None
    assert len(router.list_agents()) == 4


def test_custom_ids_are_always_namespaced():
    assert custom_agent_id("X0_OPTIMIZER") == "CUSTOM_X0_OPTIMIZER"
    assert custom_agent_id("CONDUCTOR") == "CUSTOM_CONDUCTOR"
    assert custom_agent_id("custom_writer") == "CUSTOM_writer"
    assert custom_agent_id("CUSTOM_") == ""


def test_custom_agent_cannot_replace_builtin(router, fake_backend):
    agent_id = router.register_custom_agent(CustomAgentConfig(id="X0_OPTIMIZER", name="mine", prompt="MY PROMPT"))
    assert agent_id == "CUSTOM_X0_OPTIMIZER"
    assert router.get_agent_name("X0_OPTIMIZER") == "X0优化师"

    router.handle_request("请优化、改进并提升这个提示词")
    assert "X0提示词优化师" in fake_backend.last_request["messages"][0]["content"]

    router.handle_request("hi", forced_agent="CUSTOM_X0_OPTIMIZER")
    assert fake_backend.last_request["messages"][0]["content"] == "MY PROMPT"


def test_custom_agent_named_conductor_is_reachable(router, fake_backend):
    agent_id = router.register_custom_agent(CustomAgentConfig(id="CONDUCTOR", name="mine", prompt="MY PROMPT"))
    assert agent_id == "CUSTOM_CONDUCTOR"

    router.handle_request("hi", forced_agent=agent_id)
    assert fake_backend.last_request["messages"][0]["content"] == "MY PROMPT"
