"""
Method Name Get Prefix Rule - 带参数的 get_/set_ 方法命名检查

get_user(id) 建议改为 user_for(id)；set_limit(n) 建议改为 limit=。
发起 HTTP GET 请求的方法、API client 文件中包装 get(...) 的方法不报告。
"""
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ..base_rule import MethodDefRule
from ..method_scanner import MethodDeclaration, SourceRange
from rblint.core.lint.corrector import Corrector
from rblint.core.lint.errors import ConfigError
from rblint.core.lint.reporter import Violation, ViolationType


GET_PREFIX = "get_"
SET_PREFIX = "set_"

# 方法体中出现以下写法，说明方法本身就是一次 HTTP GET 请求（匹配 def ... end 全文，区分大小写）
HTTP_GET_PATTERNS = (
    re.compile(r'\.get\('),                 # connection.get, HTTP.get, etc.
    re.compile(r'connection\.get'),         # Faraday connection.get
    re.compile(r'HTTP\.get'),               # Net::HTTP.get
    re.compile(r'RestClient\.get'),
    re.compile(r'Faraday\.get'),
    re.compile(r'Net::HTTP\.get'),
    re.compile(r'\.get\s*\('),              # 任意 .get( 调用
    re.compile(r'Net::HTTP::Get\.new'),
    re.compile(r'Net::HTTP::Get'),
    re.compile(r'http\.request'),           # http.request(request)
    re.compile(r'https\.request'),
    re.compile(r'Net::HTTP\.new'),          # 使用 HTTP client
)

# 裸调用 get(...)，只在 API client 文件中视为 HTTP GET 包装
HTTP_GET_WRAPPER_PATTERNS = (
    re.compile(r'\bget\s*\('),
)

# 文件路径表明是 API client / controller
API_FILE_PATTERNS = (
    re.compile(r'client', re.IGNORECASE),
    re.compile(r'api_client', re.IGNORECASE),
    re.compile(r'controller', re.IGNORECASE),
    re.compile(r'/api/'),
    re.compile(r'/clients/'),
)


@dataclass(frozen=True)
class PatternSets:
    """三组只读匹配规则，任意一条 search 成功即视为匹配"""
    http_get: Tuple[re.Pattern, ...] = HTTP_GET_PATTERNS
    http_get_wrapper: Tuple[re.Pattern, ...] = HTTP_GET_WRAPPER_PATTERNS
    api_file: Tuple[re.Pattern, ...] = API_FILE_PATTERNS

    def makes_http_get_request(self, source_text: str) -> bool:
        return matches_any(self.http_get, source_text)

    def calls_get_method(self, source_text: str) -> bool:
        return matches_any(self.http_get_wrapper, source_text)

    def is_api_file(self, file_path: str) -> bool:
        return matches_any(self.api_file, file_path.replace('\\', '/'))


DEFAULT_PATTERNS = PatternSets()


def matches_any(patterns: Sequence[re.Pattern], text: str) -> bool:
    """任意一条规则匹配即返回 True"""
    return any(pattern.search(text) for pattern in patterns)


def compile_patterns(param_name: str, values) -> Tuple[re.Pattern, ...]:
    """
    编译配置中的正则列表

    Raises:
        ConfigError: 不是字符串列表，或某条正则非法
    """
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise ConfigError(f"Rule param '{param_name}' must be a list of regular expressions")

    compiled = []
    for value in values:
        if not isinstance(value, str):
            raise ConfigError(f"Rule param '{param_name}' contains a non-string entry: {value!r}")
        try:
            compiled.append(re.compile(value))
        except re.error as e:
            raise ConfigError(f"Rule param '{param_name}' has invalid pattern {value!r}: {e}") from e
    return tuple(compiled)


class Outcome(Enum):
    """分类结果"""
    SKIP = "skip"
    FLAG_GET = "get_with_arguments"
    FLAG_SET_NON_API = "set_with_arguments"
    FLAG_SET_API = "set_with_arguments_api"


def classify(decl: MethodDeclaration, patterns: PatternSets = DEFAULT_PATTERNS) -> Outcome:
    """
    判断方法定义是否需要报告

    顺序固定：先 get_ 后 set_；get_ 分支先排除 HTTP GET，再排除 API 文件中的 get(...) 包装。
    """
    name = decl.name

    if name.startswith(GET_PREFIX):
        # 无参数的 getter 由其他命名规则负责
        if decl.argument_count == 0:
            return Outcome.SKIP
        if patterns.makes_http_get_request(decl.source_text):
            return Outcome.SKIP
        if patterns.is_api_file(decl.file_path) and patterns.calls_get_method(decl.source_text):
            return Outcome.SKIP
        return Outcome.FLAG_GET

    if name.startswith(SET_PREFIX):
        if decl.argument_count == 0:
            return Outcome.SKIP
        if patterns.is_api_file(decl.file_path):
            return Outcome.FLAG_SET_API
        return Outcome.FLAG_SET_NON_API

    return Outcome.SKIP


def strip_prefix(name: str) -> str:
    """去掉 get_ / set_ 前缀"""
    for prefix in (GET_PREFIX, SET_PREFIX):
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


def suggestions_for(name: str, outcome: Outcome) -> Tuple[str, ...]:
    """
    生成候选方法名，第一个用于自动修正

    Example:
        suggestions_for("get_user", Outcome.FLAG_GET) → ("user_for",)
        suggestions_for("set_status", Outcome.FLAG_SET_API)
            → ("create_status", "put_status", "update_status")
    """
    stripped = strip_prefix(name)

    if outcome is Outcome.FLAG_GET:
        return (f"{stripped}_for",)
    if outcome is Outcome.FLAG_SET_NON_API:
        return (f"{stripped}=",)
    if outcome is Outcome.FLAG_SET_API:
        return (f"create_{stripped}", f"put_{stripped}", f"update_{stripped}")
    return ()


# SubType 定义
class SubType:
    """method_name_get_prefix 规则的子类型"""
    GET_WITH_ARGUMENTS = ViolationType(
        Outcome.FLAG_GET.value,
        "Avoid using `get_` prefix for methods with arguments. "
        "Consider using `{name}_for` or `find_{name}` instead."
    )
    SET_WITH_ARGUMENTS = ViolationType(
        Outcome.FLAG_SET_NON_API.value,
        "Avoid using `set_` prefix for methods with arguments. "
        "Consider using the `{name}=` setter instead."
    )
    SET_WITH_ARGUMENTS_API = ViolationType(
        Outcome.FLAG_SET_API.value,
        "Avoid using `set_` prefix for methods with arguments in API clients. "
        "Consider using `{first}`, `{second}` or `{third}` instead."
    )


def violation_type_for(outcome: Outcome) -> Optional[ViolationType]:
    return {
        Outcome.FLAG_GET: SubType.GET_WITH_ARGUMENTS,
        Outcome.FLAG_SET_NON_API: SubType.SET_WITH_ARGUMENTS,
        Outcome.FLAG_SET_API: SubType.SET_WITH_ARGUMENTS_API,
    }.get(outcome)


def format_message(name: str, outcome: Outcome) -> str:
    """渲染违规消息（纯字符串插值）"""
    violation_type = violation_type_for(outcome)
    if violation_type is None:
        return ""
    return violation_type.message.format(**message_vars_for(name, outcome))


def message_vars_for(name: str, outcome: Outcome) -> dict:
    """消息模板变量"""
    message_vars = {"name": strip_prefix(name)}
    if outcome is Outcome.FLAG_SET_API:
        first, second, third = suggestions_for(name, outcome)
        message_vars.update(first=first, second=second, third=third)
    return message_vars


# x=、x?、x! 加后缀后不再是合法方法名
NAME_SUFFIX_CHARS = "=?!"


def can_rename(name: str) -> bool:
    """
    去掉前缀后的方法名能否安全改写

    Example:
        can_rename("get_user") → True
        can_rename("get_valid?") → False    # valid?_for
        can_rename("set_limit=") → False    # limit==
    """
    stripped = strip_prefix(name)
    return bool(stripped) and not stripped[0].isdigit() and stripped[-1] not in NAME_SUFFIX_CHARS


def rename_correction(name_range: SourceRange, replacement: str) -> Callable[[Corrector], None]:
    """生成只改写方法名区间的修正回调"""
    def correct(corrector: Corrector):
        corrector.replace(name_range, replacement)
    return correct


class MethodNameGetPrefixRule(MethodDefRule):
    """带参数的 get_/set_ 方法命名检查"""

    identifier = "method_name_get_prefix"
    name = "Method Name Get Prefix"
    description = "Avoid get_/set_ prefixes for methods that take arguments"
    display_name = "get_/set_ 方法命名"
    default_severity = "warning"

    def __init__(self, config=None):
        super().__init__(config)
        self.patterns = self._build_patterns()
        self.autocorrect = bool(self.get_param("autocorrect", True))

    def _build_patterns(self) -> PatternSets:
        """配置中给出的正则列表替换默认规则"""
        overrides = {}
        for param_name, field_name in (("http_get_patterns", "http_get"),
                                       ("http_get_wrapper_patterns", "http_get_wrapper"),
                                       ("api_file_patterns", "api_file")):
            values = self.get_param(param_name)
            if values is not None:
                overrides[field_name] = compile_patterns(param_name, values)
        return PatternSets(**overrides) if overrides else DEFAULT_PATTERNS

    def _project_view(self, decl: MethodDeclaration) -> MethodDeclaration:
        """API 文件规则只匹配项目内的路径（/app/clients/x.rb），不受项目所在目录名影响"""
        rel_path = self.relative_path(decl.file_path)
        if rel_path is None:
            return decl
        return replace(decl, file_path="/" + rel_path)

    def on_def(self, decl: MethodDeclaration, lines: Optional[List[str]] = None) -> Optional[Violation]:
        outcome = classify(self._project_view(decl), self.patterns)
        if outcome is Outcome.SKIP:
            return None

        suggestions = suggestions_for(decl.name, outcome)
        correction = None
        if self.autocorrect and can_rename(decl.name):
            correction = rename_correction(decl.name_range, suggestions[0])

        return self.create_violation(
            file_path=decl.file_path,
            line=decl.name_range.line,
            column=decl.name_range.column,
            lines=lines or [],
            violation_type=violation_type_for(outcome),
            related_lines=decl.related_lines,
            message_vars=message_vars_for(decl.name, outcome),
            correction=correction,
            context=decl.source_text if lines is None else None
        )
