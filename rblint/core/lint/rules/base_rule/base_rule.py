"""
Base Rule - 规则基类

BaseRule 负责规则元数据、配置读取和 Violation 构造；
MethodDefRule 把文件拆成方法定义，逐个交给子类的 on_def。
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

from rblint.core.lint.config import RuleConfig
from rblint.core.lint.corrector import Corrector
from rblint.core.lint.reporter import Violation, Severity, ViolationType
from ..method_scanner import MethodDeclaration, find_method_definitions
from ..rule_utils import compute_context_hash


class BaseRule(ABC):
    """
    规则基类

    子类声明以下属性并实现 check：
        identifier        唯一标识，也是配置中 python_rules 下的键
        name              英文名称
        description       一句话描述
        display_name      报告中显示的名称
        default_severity  配置未指定 severity 时使用
    """

    identifier: str = ""
    name: str = ""
    description: str = ""
    display_name: str = ""
    default_severity: str = "warning"
    # 由 RuleEngine 注册时设置
    project_root: Optional[Path] = None

    def __init__(self, config: Optional[RuleConfig] = None):
        self.config = config or RuleConfig()
        self.severity = Severity(self.config.severity or self.default_severity)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def get_param(self, key: str, default=None):
        return self.config.params.get(key, default)

    @abstractmethod
    def check(self, file_path: str, content: str, lines: List[str], changed_lines: Set[int]) -> List[Violation]:
        """
        Args:
            file_path: 文件路径
            content: 文件完整内容
            lines: content.split('\\n')
            changed_lines: 只报告这些行（1-indexed）；空集合表示全部
        """

    def relative_path(self, file_path: str) -> Optional[str]:
        """file_path 相对项目根目录的 posix 路径；未设置根目录或不在项目内时返回 None"""
        if self.project_root is None or not Path(file_path).is_absolute():
            return None
        try:
            return Path(file_path).relative_to(self.project_root).as_posix()
        except ValueError:
            return None

    @staticmethod
    def should_check_line(line_num: int, changed_lines: Set[int]) -> bool:
        return not changed_lines or line_num in changed_lines

    @staticmethod
    def get_context(lines: List[str], related_lines: Tuple[int, int]) -> str:
        """related_lines（1-indexed，闭区间）对应的源码，去掉行尾空白"""
        start, end = related_lines
        return '\n'.join(line.rstrip() for line in lines[max(start, 1) - 1:end])

    def create_violation(self, file_path: str, line: int, column: int,
                         lines: List[str], violation_type: ViolationType,
                         related_lines: Optional[Tuple[int, int]] = None,
                         message_vars: Optional[Dict[str, str]] = None,
                         correction: Optional[Callable[[Corrector], None]] = None,
                         context: Optional[str] = None) -> Violation:
        """
        构造 Violation

        Args:
            line / column: 违规位置（1-indexed）
            lines: 文件所有行，用于截取 context
            violation_type: 子类型（sub_type + 消息模板）
            related_lines: 关联行范围，默认只有 line 本身
            message_vars: 消息模板变量
            correction: 自动修正回调；None 表示只报告
            context: 直接给出关联源码，不再从 lines 截取
        """
        related_lines = related_lines or (line, line)
        if context is None:
            context = self.get_context(lines, related_lines)

        return Violation(
            file_path=file_path,
            line=line,
            column=column,
            severity=self.severity,
            message=violation_type.message.format(**(message_vars or {})),
            rule_id=self.identifier,
            related_lines=related_lines,
            context=context,
            code_hash=compute_context_hash(context),
            sub_type=violation_type.id,
            rule_name=self.display_name or None,
            correction=correction
        )

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.identifier} enabled={self.enabled} severity={self.severity.value}>"


class MethodDefRule(BaseRule):
    """
    方法定义规则基类

    子类实现 on_def：每个方法定义调用一次，返回 0 或 1 个 Violation。
    只有方法名所在行在 changed_lines 中时才会调用。
    """

    def check(self, file_path: str, content: str, lines: List[str], changed_lines: Set[int]) -> List[Violation]:
        violations = []
        for decl in find_method_definitions(content, file_path):
            if not self.should_check_line(decl.name_range.line, changed_lines):
                continue
            violation = self.on_def(decl, lines)
            if violation is not None:
                violations.append(violation)
        return violations

    @abstractmethod
    def on_def(self, decl: MethodDeclaration, lines: Optional[List[str]] = None) -> Optional[Violation]:
        """
        Args:
            decl: 方法定义
            lines: 文件所有行；单独调用时省略，context 取 decl.source_text
        """
