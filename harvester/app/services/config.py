import os, re, json
from pathlib import Path
from typing import Any, Dict
import yaml

_env_pattern = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _env_expand(value: str) -> str:
    def repl(m):
        return os.getenv(m.group(1), "")
    return _env_pattern.sub(repl, value)


def load_yaml(path: str) -> Dict[str, Any]:
    if not path or not Path(path).exists():
        return {}
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    s = json.dumps(data)
    s = _env_expand(s)
    return json.loads(s)


def setting(cfg: Dict[str, Any], name: str, default: Any) -> Any:
    """Environment wins over the YAML file, the YAML file over the default."""
    raw = os.getenv(name)
    if raw is None:
        raw = cfg.get(name, cfg.get(name.lower()))
    if raw is None:
        return default
    if isinstance(default, bool):
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def split_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [p.strip() for p in str(value).split(",") if p.strip()]
