"""
Configuration Module - 配置文件解析（YAML）

用户配置按键深度合并到 DEFAULT_CONFIG 之上（列表整体替换）:

    fail_on_error: true
    included: ["**/*.rb"]
    excluded: ["vendor/**", "db/schema.rb"]
    python_rules:
      method_name_get_prefix:
        severity: error
        params:
          autocorrect: true
          api_file_patterns: ["client", "/api/"]
    performance:
      parallel: true
      max_workers: 0
"""
import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from rblint.lib.logger import get_logger
from .errors import ConfigError


SEVERITIES = ("error", "warning", "note")


@dataclass
class RuleConfig:
    enabled: bool = True
    severity: Optional[str] = None  # None 表示使用规则的 default_severity
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PerformanceConfig:
    parallel: bool = True
    # 0 表示自动：min(32, cpu_count * 2)
    max_workers: int = 0
    file_cache_size_mb: int = 100


@dataclass
class LintConfig:
    fail_on_error: bool = True
    included: List[str] = field(default_factory=lambda: ["**/*.rb"])
    excluded: List[str] = field(default_factory=list)
    python_rules: Dict[str, RuleConfig] = field(default_factory=dict)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)


def deep_merge(base: Dict, override: Dict) -> Dict:
    """把 override 递归合并进 base（原地修改并返回 base）"""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _glob_list(raw: Dict[str, Any], key: str) -> List[str]:
    """included / excluded：字符串或字符串列表，必须是相对路径模式"""
    value = raw.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
        raise ConfigError(f"'{key}' must be a list of glob patterns")
    for pattern in value:
        if Path(pattern).is_absolute():
            raise ConfigError(f"'{key}' patterns must be relative to the project root: {pattern}")
    return value


def _rule_config(rule_id: str, value: Any) -> RuleConfig:
    # 简写形式: rule_id: false
    if isinstance(value, bool):
        return RuleConfig(enabled=value)
    if not isinstance(value, dict):
        raise ConfigError(f"python_rules.{rule_id} must be a mapping or a boolean")

    severity = value.get("severity")
    if severity is not None and severity not in SEVERITIES:
        raise ConfigError(f"python_rules.{rule_id}.severity must be one of {', '.join(SEVERITIES)}, got {severity!r}")

    params = value.get("params") or {}
    if not isinstance(params, dict):
        raise ConfigError(f"python_rules.{rule_id}.params must be a mapping")

    return RuleConfig(enabled=bool(value.get("enabled", True)), severity=severity, params=params)


class ConfigLoader:
    """配置加载器"""

    # 按优先级
    DEFAULT_CONFIG_PATHS = [
        ".rblint/config.yaml",
        ".rblint.yaml",
        ".rblint.yml",
    ]

    DEFAULT_CONFIG = {
        "fail_on_error": True,
        "included": ["**/*.rb"],
        "excluded": ["vendor/**", "tmp/**", "node_modules/**", "db/schema.rb"],
        "python_rules": {
            "method_name_get_prefix": {
                "enabled": True,
                "severity": "warning",
                "params": {"autocorrect": True},
            },
        },
        "performance": {
            "parallel": True,
            "max_workers": 0,
            "file_cache_size_mb": 100,
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Dict[str, Any] = {}
        self.logger = get_logger("rblint")

    @classmethod
    def find_config(cls, project_root: Path) -> Optional[str]:
        for rel_path in cls.DEFAULT_CONFIG_PATHS:
            candidate = Path(project_root) / rel_path
            if candidate.is_file():
                return str(candidate)
        return None

    def load(self) -> LintConfig:
        """
        Raises:
            ConfigError: 文件无法读取 / 不是合法 YAML / 顶层不是映射 / 配置项类型错误
        """
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path is None:
            self.logger.debug("No config file given, using defaults")
        elif not self.config_path.exists():
            self.logger.warning(f"Config file does not exist, using defaults: {self.config_path}")
        else:
            user_config = self._read_yaml()
            deep_merge(self._config, user_config)
            self.logger.debug(f"Merged user config keys: {sorted(user_config)}")

        return self._build_lint_config()

    def _read_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config {self.config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config {self.config_path} must be a mapping, got {type(data).__name__}")
        return data

    def _build_lint_config(self) -> LintConfig:
        raw = self._config

        rules = raw.get("python_rules") or {}
        if not isinstance(rules, dict):
            raise ConfigError("'python_rules' must be a mapping")

        perf = raw.get("performance") or {}
        if not isinstance(perf, dict):
            raise ConfigError("'performance' must be a mapping")

        return LintConfig(
            fail_on_error=bool(raw.get("fail_on_error", True)),
            included=_glob_list(raw, "included"),
            excluded=_glob_list(raw, "excluded"),
            python_rules={rule_id: _rule_config(rule_id, value) for rule_id, value in rules.items()},
            performance=PerformanceConfig(
                parallel=bool(perf.get("parallel", True)),
                max_workers=int(perf.get("max_workers") or 0),
                file_cache_size_mb=int(perf.get("file_cache_size_mb") or 100),
            ),
        )

    def get_raw_config(self) -> Dict[str, Any]:
        """合并后的原始配置字典"""
        return self._config
