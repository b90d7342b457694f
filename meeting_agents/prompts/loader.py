"""
Versioned prompt loader: reads prompts from meeting_agents/prompts/{version}/{component}.yaml.
Use PROMPT_VERSION (default v1) to select version.
"""
from functools import lru_cache
from pathlib import Path
from typing import Dict

import yaml

_PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=32)
def load_prompts(component: str, version: str = "v1") -> Dict[str, str]:
    """Load prompt templates for a component. Returns dict with keys "system" and "user"; values may contain
    placeholders like <<TRANSCRIPT>>, <<TODAY>>, <<END_DATE>>."""
    path = _PROMPTS_DIR / version / f"{component}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    out: Dict[str, str] = {}
    for key in ("system", "user"):
        val = data.get(key)
        if val is not None:
            out[key] = val.strip() if isinstance(val, str) else str(val).strip()
    missing = {"system", "user"} - out.keys()
    if missing:
        raise ValueError(f"Component {component} is missing {sorted(missing)} prompt(s) in version {version}")
    return out


def render_prompts(component: str, version: str = "v1", **values: str) -> Dict[str, str]:
    """Return {"system", "user"} with every <<NAME>> placeholder replaced by values[name.lower()]."""
    prompts = dict(load_prompts(component, version))
    for key, template in prompts.items():
        for name, value in values.items():
            template = template.replace(f"<<{name.upper()}>>", value)
        prompts[key] = template
    return prompts
