"""
AI provider and model configuration.

    models.providers.<name>        {baseUrl, apiKey?, models: [...]}
    agents.defaults.models         {"<provider>/<modelId>": {}}   available models
    agents.defaults.model.primary  "<provider>/<modelId>"         default model

A model's full id is always "<provider>/<modelId>"; that string is the join
key between the provider list, the available set and the primary pointer.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from audit import audit_log, utc_now
from config_errors import ConfigValidationError
from config_store import ConfigStore, ensure_object, get_path
from scrub import mask_secret


class ModelCostConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: float = 0
    output: float = 0
    cache_read: float = Field(0, alias="cacheRead")
    cache_write: float = Field(0, alias="cacheWrite")


class ModelConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    api: Optional[str] = None
    input: list[str] = Field(default_factory=list)
    context_window: Optional[int] = Field(None, alias="contextWindow")
    max_tokens: Optional[int] = Field(None, alias="maxTokens")
    reasoning: Optional[bool] = None
    cost: Optional[ModelCostConfig] = None


class SuggestedModel(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    context_window: Optional[int] = None
    max_tokens: Optional[int] = None
    recommended: bool = False


class OfficialProvider(BaseModel):
    id: str
    name: str
    icon: str
    default_base_url: Optional[str] = None
    api_type: str
    suggested_models: list[SuggestedModel]
    requires_api_key: bool = True
    docs_url: Optional[str] = None


def _suggested(id: str, name: str, description: str, context_window: int, max_tokens: int,
               recommended: bool = False) -> SuggestedModel:
    return SuggestedModel(
        id=id, name=name, description=description,
        context_window=context_window, max_tokens=max_tokens, recommended=recommended,
    )


OFFICIAL_PROVIDERS = [
    OfficialProvider(
        id="anthropic", name="Anthropic Claude", icon="🟣",
        default_base_url="https://api.anthropic.com", api_type="anthropic-messages",
        docs_url="https://docs.openclaw.ai/providers/anthropic",
        suggested_models=[
            _suggested("claude-opus-4-5-20251101", "Claude Opus 4.5", "Most capable, for complex tasks", 200000, 8192, True),
            _suggested("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "Balanced cost and quality", 200000, 8192),
        ],
    ),
    OfficialProvider(
        id="openai", name="OpenAI", icon="🟢",
        default_base_url="https://api.openai.com/v1", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/openai",
        suggested_models=[
            _suggested("gpt-4o", "GPT-4o", "Multimodal flagship", 128000, 4096, True),
            _suggested("gpt-4o-mini", "GPT-4o Mini", "Fast and cheap", 128000, 4096),
        ],
    ),
    OfficialProvider(
        id="moonshot", name="Moonshot", icon="🌙",
        default_base_url="https://api.moonshot.cn/v1", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/moonshot",
        suggested_models=[
            _suggested("kimi-k2.5", "Kimi K2.5", "Latest flagship", 200000, 8192, True),
            _suggested("moonshot-v1-128k", "Moonshot 128K", "Long context", 128000, 8192),
        ],
    ),
    OfficialProvider(
        id="qwen", name="Qwen", icon="🔮",
        default_base_url="https://dashscope.aliyuncs.com/compatible-mode/v1", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/qwen",
        suggested_models=[
            _suggested("qwen-max", "Qwen Max", "Most capable", 128000, 8192, True),
            _suggested("qwen-plus", "Qwen Plus", "Balanced", 128000, 8192),
        ],
    ),
    OfficialProvider(
        id="deepseek", name="DeepSeek", icon="🔵",
        default_base_url="https://api.deepseek.com", api_type="openai-completions",
        suggested_models=[
            _suggested("deepseek-chat", "DeepSeek V3", "Chat model", 128000, 8192, True),
            _suggested("deepseek-reasoner", "DeepSeek R1", "Reasoning model", 128000, 8192),
        ],
    ),
    OfficialProvider(
        id="glm", name="GLM", icon="🔷",
        default_base_url="https://open.bigmodel.cn/api/paas/v4", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/glm",
        suggested_models=[
            _suggested("glm-4", "GLM-4", "Latest flagship", 128000, 8192, True),
        ],
    ),
    OfficialProvider(
        id="minimax", name="MiniMax", icon="🟡",
        default_base_url="https://api.minimax.io/anthropic", api_type="anthropic-messages",
        docs_url="https://docs.openclaw.ai/providers/minimax",
        suggested_models=[
            _suggested("minimax-m2.1", "MiniMax M2.1", "Latest model", 200000, 8192, True),
        ],
    ),
    OfficialProvider(
        id="venice", name="Venice AI", icon="🏛️",
        default_base_url="https://api.venice.ai/api/v1", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/venice",
        suggested_models=[
            _suggested("llama-3.3-70b", "Llama 3.3 70B", "Privacy-first inference", 128000, 8192, True),
        ],
    ),
    OfficialProvider(
        id="openrouter", name="OpenRouter", icon="🔄",
        default_base_url="https://openrouter.ai/api/v1", api_type="openai-completions",
        docs_url="https://docs.openclaw.ai/providers/openrouter",
        suggested_models=[
            _suggested("anthropic/claude-opus-4-5", "Claude Opus 4.5", "Via OpenRouter", 200000, 8192, True),
        ],
    ),
    OfficialProvider(
        id="ollama", name="Ollama (local)", icon="🟠",
        default_base_url="http://localhost:11434", api_type="openai-completions",
        requires_api_key=False,
        docs_url="https://docs.openclaw.ai/providers/ollama",
        suggested_models=[
            _suggested("llama3", "Llama 3", "Runs locally", 8192, 4096, True),
        ],
    ),
]


def get_official_providers() -> list[dict]:
    return [p.model_dump() for p in OFFICIAL_PROVIDERS]


def get_ai_providers() -> list[dict]:
    """Older shape of the provider catalogue, kept for existing frontends."""
    return [
        {
            "id": p.id,
            "name": p.name,
            "icon": p.icon,
            "default_base_url": p.default_base_url,
            "requires_api_key": p.requires_api_key,
            "models": [
                {"id": m.id, "name": m.name, "description": m.description, "recommended": m.recommended}
                for m in p.suggested_models
            ],
        }
        for p in OFFICIAL_PROVIDERS
    ]


def _configured_models(provider_name: str, provider_cfg: dict, primary: Optional[str]) -> list[dict]:
    models = []
    raw_models = provider_cfg.get("models")
    if not isinstance(raw_models, list):
        return models
    for m in raw_models:
        if not isinstance(m, dict) or not isinstance(m.get("id"), str):
            continue
        model_id = m["id"]
        full_id = f"{provider_name}/{model_id}"
        name = m.get("name")
        models.append({
            "full_id": full_id,
            "id": model_id,
            "name": name if isinstance(name, str) else model_id,
            "api_type": m.get("api") if isinstance(m.get("api"), str) else None,
            "context_window": m.get("contextWindow") if isinstance(m.get("contextWindow"), int) else None,
            "max_tokens": m.get("maxTokens") if isinstance(m.get("maxTokens"), int) else None,
            "is_primary": primary == full_id,
        })
    return models


def get_ai_config(store: ConfigStore) -> dict:
    """Overview of providers, models, agents and bindings for the AI settings page."""
    config = store.load()

    primary = get_path(config, "agents", "defaults", "model", "primary")
    if not isinstance(primary, str):
        primary = None

    available = get_path(config, "agents", "defaults", "models")
    available_models = list(available.keys()) if isinstance(available, dict) else []

    configured_providers = []
    providers = get_path(config, "models", "providers")
    if isinstance(providers, dict):
        for provider_name, provider_cfg in providers.items():
            if not isinstance(provider_cfg, dict):
                continue
            api_key = provider_cfg.get("apiKey")
            if not isinstance(api_key, str):
                api_key = None
            base_url = provider_cfg.get("baseUrl")
            configured_providers.append({
                "name": provider_name,
                "base_url": base_url if isinstance(base_url, str) else "",
                "api_key_masked": mask_secret(api_key) if api_key is not None else None,
                "has_api_key": api_key is not None,
                "models": _configured_models(provider_name, provider_cfg, primary),
            })

    agents_list = get_path(config, "agents", "list")
    return {
        "primary_model": primary,
        "configured_providers": configured_providers,
        "available_models": available_models,
        "agents_list": agents_list if isinstance(agents_list, list) else [],
        "bindings": config.get("bindings"),
    }


def _model_entry(model: ModelConfig, api_type: str) -> dict:
    entry: dict[str, Any] = {
        "id": model.id,
        "name": model.name,
        "api": model.api or api_type,
        "input": model.input or ["text"],
    }
    if model.context_window is not None:
        entry["contextWindow"] = model.context_window
    if model.max_tokens is not None:
        entry["maxTokens"] = model.max_tokens
    if model.reasoning is not None:
        entry["reasoning"] = model.reasoning
    cost = model.cost or ModelCostConfig()
    entry["cost"] = cost.model_dump(by_alias=True)
    return entry


def save_provider(
    store: ConfigStore,
    provider_name: str,
    base_url: str,
    api_key: Optional[str],
    api_type: str,
    models: list[ModelConfig],
) -> str:
    """Add or replace a provider and register its models as available.

    api_key None or "" keeps whatever key the provider already has.
    """
    provider_name = provider_name.strip()
    if not provider_name:
        raise ConfigValidationError("Provider name must not be empty")
    if "/" in provider_name:
        raise ConfigValidationError("Provider name must not contain '/'")
    if not base_url.strip():
        raise ConfigValidationError("Base URL must not be empty")
    if not api_type.strip():
        raise ConfigValidationError("API type must not be empty")
    for model in models:
        if not model.id.strip():
            raise ConfigValidationError(f"Model id must not be empty (provider {provider_name})")

    with store.transaction() as config:
        providers = ensure_object(ensure_object(config, "models"), "providers")
        defaults = ensure_object(ensure_object(config, "agents"), "defaults")
        available = ensure_object(defaults, "models")

        provider_cfg: dict[str, Any] = {
            "baseUrl": base_url,
            "models": [_model_entry(m, api_type) for m in models],
        }

        kept_key = False
        if api_key:
            provider_cfg["apiKey"] = api_key
        else:
            existing_key = get_path(providers, provider_name, "apiKey")
            if isinstance(existing_key, str):
                provider_cfg["apiKey"] = existing_key
                kept_key = True

        providers[provider_name] = provider_cfg

        for model in models:
            available[f"{provider_name}/{model.id}"] = {}

        ensure_object(config, "meta")["lastTouchedAt"] = utc_now()

    audit_log("provider_saved", {
        "provider": provider_name,
        "models": [m.id for m in models],
        "api_key": "kept" if kept_key else ("updated" if api_key else "none"),
    })
    return f"Provider {provider_name} saved"


def delete_provider(store: ConfigStore, provider_name: str) -> str:
    """Remove a provider, its available models, and the primary pointer if it was one of them."""
    provider_name = provider_name.strip()
    if not provider_name:
        raise ConfigValidationError("Provider name must not be empty")
    prefix = f"{provider_name}/"

    with store.transaction() as config:
        providers = get_path(config, "models", "providers")
        if isinstance(providers, dict):
            providers.pop(provider_name, None)

        available = get_path(config, "agents", "defaults", "models")
        removed = []
        if isinstance(available, dict):
            removed = [k for k in available if k.startswith(prefix)]
            for key in removed:
                del available[key]

        model_cfg = get_path(config, "agents", "defaults", "model")
        primary_cleared = False
        if isinstance(model_cfg, dict):
            primary = model_cfg.get("primary")
            if isinstance(primary, str) and primary.startswith(prefix):
                model_cfg["primary"] = None
                primary_cleared = True

    audit_log("provider_deleted", {
        "provider": provider_name,
        "models_removed": removed,
        "primary_cleared": primary_cleared,
    })
    return f"Provider {provider_name} deleted"


def set_primary_model(store: ConfigStore, model_id: str) -> str:
    if not model_id.strip():
        raise ConfigValidationError("Model id must not be empty")
    with store.transaction() as config:
        defaults = ensure_object(ensure_object(config, "agents"), "defaults")
        ensure_object(defaults, "model")["primary"] = model_id
    audit_log("primary_model_set", {"model": model_id})
    return f"Primary model set to {model_id}"


def add_available_model(store: ConfigStore, model_id: str) -> str:
    if not model_id.strip():
        raise ConfigValidationError("Model id must not be empty")
    with store.transaction() as config:
        defaults = ensure_object(ensure_object(config, "agents"), "defaults")
        ensure_object(defaults, "models")[model_id] = {}
    audit_log("available_model_added", {"model": model_id})
    return f"Model {model_id} added"


def remove_available_model(store: ConfigStore, model_id: str) -> str:
    if not model_id.strip():
        raise ConfigValidationError("Model id must not be empty")
    with store.transaction() as config:
        available = get_path(config, "agents", "defaults", "models")
        if isinstance(available, dict):
            available.pop(model_id, None)
    audit_log("available_model_removed", {"model": model_id})
    return f"Model {model_id} removed"
