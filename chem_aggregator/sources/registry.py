from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..config import Settings
from ..util.logging import get_logger
from .base import SourceAdapter
from .chemspider import ChemSpiderAdapter
from .http import HttpClient
from .manufacturers import ManufacturerCatalogAdapter
from .pubchem import PubChemAdapter


logger = get_logger(__name__)


@dataclass
class SourceConfig:
    name: str
    enabled: bool = True
    confidence: Optional[float] = None  # None keeps the adapter's own baseline
    options: Dict[str, Any] = field(default_factory=dict)


DEFAULT_SOURCES: List[SourceConfig] = [
    SourceConfig(name="pubchem", confidence=0.8),
    SourceConfig(name="chemspider", confidence=0.85),
    SourceConfig(name="manufacturers", confidence=0.7),
]


def load_source_configs(cfg_path: str | None = None) -> List[SourceConfig]:
    """Read the source registry YAML; fall back to built-in defaults when absent."""
    path = Path(cfg_path or "config/sources.yml")
    if not path.exists():
        logger.info("sources_file_missing", extra={"path": str(path)})
        return [SourceConfig(s.name, s.enabled, s.confidence, dict(s.options)) for s in DEFAULT_SOURCES]
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    out: List[SourceConfig] = []
    for s in data.get("sources", []):
        options = {k: v for k, v in s.items() if k not in {"name", "enabled", "confidence"}}
        conf = s.get("confidence")
        out.append(
            SourceConfig(
                name=str(s["name"]).lower(),
                enabled=bool(s.get("enabled", True)),
                confidence=float(conf) if conf is not None else None,
                options=options,
            )
        )
    return out


def _build_one(cfg: SourceConfig, settings: Settings, http: HttpClient) -> Optional[SourceAdapter]:
    kwargs: Dict[str, Any] = {}
    if cfg.confidence is not None:
        kwargs["confidence"] = cfg.confidence
    if cfg.name == "pubchem":
        return PubChemAdapter(http, base_url=settings.pubchem_base_url, **kwargs)
    if cfg.name == "chemspider":
        return ChemSpiderAdapter(
            http,
            api_key=settings.chemspider_api_key,
            base_url=settings.chemspider_base_url,
            **kwargs,
        )
    if cfg.name == "manufacturers":
        return ManufacturerCatalogAdapter(catalogs=cfg.options.get("catalogs"), **kwargs)
    logger.warning("unknown_source", extra={"source": cfg.name})
    return None


def build_adapters(settings: Settings, http: HttpClient, configs: Optional[List[SourceConfig]] = None) -> List[SourceAdapter]:
    """Instantiate enabled adapters in registry order."""
    configs = configs if configs is not None else load_source_configs(settings.sources_file)
    adapters: List[SourceAdapter] = []
    for cfg in configs:
        if not cfg.enabled:
            continue
        adapter = _build_one(cfg, settings, http)
        if adapter is not None:
            adapters.append(adapter)
    logger.info("adapters_built", extra={"sources": [a.name for a in adapters]})
    return adapters
