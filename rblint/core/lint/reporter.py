"""
Reporter Module - 违规记录与输出（编译器格式 / 易读格式 / JSON）
"""
import hashlib
import json
import sys
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple, TYPE_CHECKING

from rblint.lib.logger import get_logger

if TYPE_CHECKING:
    from .corrector import Corrector


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


class ViolationType(NamedTuple):
    """
    规则子类型

    Attributes:
        id: 稳定的 sub_type 标识（去重、JSON 输出使用）
        message: 消息模板，可包含 {name} 等占位符
        severity: 建议级别；实际级别由规则配置决定
    """
    id: str
    message: str
    severity: Severity = Severity.WARNING


# to_dict 中值为空时省略的字段
OPTIONAL_FIELDS = ("related_lines", "context", "code_hash", "sub_type", "rule_name")


@dataclass
class Violation:
    """一条违规记录"""
    file_path: str
    line: int
    column: int
    severity: Severity
    message: str
    rule_id: str
    source: str = "rblint"
    related_lines: Optional[Tuple[int, int]] = None  # 方法定义的首行 / 末行
    context: Optional[str] = None
    code_hash: Optional[str] = None
    sub_type: Optional[str] = None
    rule_name: Optional[str] = None
    # 自动修正回调：只向 Corrector 登记违规对应区间的修改
    correction: Optional[Callable[["Corrector"], None]] = field(default=None, repr=False, compare=False)
    _violation_id: Optional[str] = field(default=None, repr=False, compare=False)

    @property
    def correctable(self) -> bool:
        return self.correction is not None

    @property
    def violation_id(self) -> str:
        """
        稳定标识

        只使用相对方法首行的偏移，方法整体上下移动时 id 不变。
        """
        if self._violation_id is None:
            anchor = self.related_lines[0] if self.related_lines else self.line
            parts = (
                self.file_path,
                self.rule_id,
                self.sub_type or "default",
                self.code_hash or "",
                str(self.line - anchor),
                str(self.column),
            )
            self._violation_id = hashlib.md5('|'.join(parts).encode()).hexdigest()[:16]
        return self._violation_id

    def to_compiler_format(self) -> str:
        """path:line:col: warning: message [rule_id]"""
        return f"{self.file_path}:{self.line}:{self.column}: {self.severity.value}: {self.message} [{self.rule_id}]"

    def to_plain_format(self) -> str:
        marker = " [Correctable]" if self.correctable else ""
        return (f"[{self.severity.value.upper()}] {self.file_path}:{self.line}:{self.column} "
                f"- {self.message} ({self.rule_id}){marker}")

    def to_dict(self) -> dict:
        """序列化（correction 回调只体现为 correctable）"""
        data = {
            "file_path": self.file_path,
            "line": self.line,
            "column": self.column,
            "severity": self.severity.value,
            "message": self.message,
            "rule_id": self.rule_id,
            "source": self.source,
            "correctable": self.correctable,
            "violation_id": self.violation_id,
        }
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value:
                data[name] = list(value) if isinstance(value, tuple) else value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Violation":
        related_lines = data.get("related_lines")
        return cls(
            file_path=data["file_path"],
            line=data["line"],
            column=data["column"],
            severity=Severity(data.get("severity", Severity.WARNING.value)),
            message=data.get("message", ""),
            rule_id=data["rule_id"],
            source=data.get("source", "rblint"),
            related_lines=tuple(related_lines) if related_lines else None,
            context=data.get("context"),
            code_hash=data.get("code_hash"),
            sub_type=data.get("sub_type"),
            rule_name=data.get("rule_name"),
        )


OUTPUT_FORMATS = {
    "compiler": Violation.to_compiler_format,
    "plain": Violation.to_plain_format,
}


class Reporter:
    """收集违规并输出"""

    def __init__(self, output_format: str = "compiler"):
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {output_format}")
        self.output_format = output_format
        self.violations: List[Violation] = []
        self.corrected_count = 0
        self.logger = get_logger("rblint")

    def add_violation(self, violation: Violation):
        self.violations.append(violation)

    def add_violations(self, violations: Iterable[Violation]):
        self.violations.extend(violations)

    def deduplicate(self):
        """同一位置、同一规则只保留第一条"""
        unique = {}
        for v in self.violations:
            unique.setdefault((v.file_path, v.line, v.column, v.rule_id), v)
        if len(unique) != len(self.violations):
            self.logger.debug(f"Dropped {len(self.violations) - len(unique)} duplicate violations")
        self.violations = list(unique.values())

    def sort(self):
        self.violations.sort(key=lambda v: (v.file_path, v.line, v.column))

    @property
    def has_errors(self) -> bool:
        return any(v.severity is Severity.ERROR for v in self.violations)

    def report(self, stream=None) -> int:
        """
        逐行输出违规

        Returns:
            有 error 级别违规时返回 1，否则返回 0
        """
        stream = stream or sys.stdout
        self.deduplicate()
        self.sort()

        render = OUTPUT_FORMATS[self.output_format]
        for v in self.violations:
            print(render(v), file=stream)

        return 1 if self.has_errors else 0

    def get_summary(self) -> dict:
        by_severity = Counter(v.severity for v in self.violations)
        return {
            "total": len(self.violations),
            "errors": by_severity[Severity.ERROR],
            "warnings": by_severity[Severity.WARNING],
            "correctable": sum(1 for v in self.violations if v.correctable),
            "corrected": self.corrected_count,
            "files_affected": len({v.file_path for v in self.violations}),
        }

    def to_json_dict(self, run_id: Optional[str] = None, extra: Optional[dict] = None) -> dict:
        data = {
            "summary": self.get_summary(),
            "violations": [v.to_dict() for v in self.violations],
        }
        if run_id:
            data["run_id"] = run_id
        data.update(extra or {})
        return data

    def to_json(self, run_id: Optional[str] = None, extra: Optional[dict] = None) -> str:
        return json.dumps(self.to_json_dict(run_id=run_id, extra=extra), indent=2, ensure_ascii=False)

    def print_summary(self, stream=None):
        """摘要输出到 stderr，不影响 stdout 上的结果解析"""
        stream = stream or sys.stderr
        summary = self.get_summary()
        print(f"\n{'=' * 50}", file=stream)
        print("RbLint Summary:", file=stream)
        for label, key in (("Total violations", "total"), ("Errors", "errors"), ("Warnings", "warnings"),
                           ("Correctable", "correctable"), ("Corrected", "corrected"),
                           ("Files affected", "files_affected")):
            print(f"  {label}: {summary[key]}", file=stream)
        print(f"{'=' * 50}\n", file=stream)
