"""
Method Scanner - Ruby 方法定义扫描

把一个 Ruby 文件拆成逐个的 MethodDeclaration，供 MethodDefRule.on_def 回调使用。
扫描是纯文本的：先用 blank_non_code 屏蔽字符串和注释，再按关键字配对找到 def 对应的 end。
"""
import re
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from .rule_utils import (
    blank_non_code,
    build_line_index,
    count_arguments,
    find_matching_paren,
    offset_to_line_col,
)


@dataclass(frozen=True)
class SourceRange:
    """源码区间：[begin, end) 字符偏移，line / column 为 begin 的位置（1-indexed）"""
    begin: int
    end: int
    line: int
    column: int


@dataclass(frozen=True)
class MethodDeclaration:
    """一个方法定义的不可变视图"""
    name: str
    argument_count: int
    source_text: str            # def ... end 的完整原文
    name_range: SourceRange     # 仅方法名标识符，自动修正只改写这一段
    file_path: str
    related_lines: Tuple[int, int] = (0, 0)  # 方法定义的首行 / 末行
    receiver: Optional[str] = None           # def self.foo 中的 self


class DefHeader(NamedTuple):
    """def 行的解析结果"""
    name: str
    name_begin: int
    name_end: int
    receiver: Optional[str]
    args_code: str
    header_end: int
    endless: bool


# def 头部：可选接收者 + 方法名（含 ?/!/= 后缀与运算符方法）
DEF_HEADER_PATTERN = re.compile(
    r'def[ \t]+'
    r'(?:(?P<receiver>self|[A-Za-z_]\w*(?:::[A-Z]\w*)*)[ \t]*\.[ \t]*)?'
    r'(?P<name>[A-Za-z_]\w*(?:[?!]|=(?![=~>]))?'
    r'|\[\]=?|===?|=~|<=>|<<|>>|<=|>=|\*\*|[-+!~]@?|[<>*/%&|^])'
)

# 结构扫描使用的 token：标识符 / 数字 / 换行 / 多字符运算符 / 单个符号
TOKEN_PATTERN = re.compile(
    r'[A-Za-z_][A-Za-z0-9_]*[?!]?|\d[\w.]*|\n|::|\.\.\.?|&&|\|\||\S'
)

# 总是开启一个需要 end 的块
BLOCK_OPENERS = {'class', 'module', 'begin', 'case'}

# 只有出现在语句开头时才开启块（否则是修饰符，如 `return x if y`）
CONDITIONAL_OPENERS = {'if', 'unless', 'while', 'until', 'for'}

# 循环头部后的 do 不额外开启块
LOOP_KEYWORDS = {'while', 'until', 'for'}

# 这些关键字之后仍然处于语句开头
STATEMENT_PREFIX_KEYWORDS = {
    'then', 'else', 'elsif', 'do', 'begin', 'and', 'or', 'not',
    'when', 'in', 'ensure',
}

# 之后的表达式不处于语句开头
VALUE_TOKENS = {')', ']', '}', '"', "'", '`'}


def _is_keyword_position(code: str, begin: int, end: int) -> bool:
    """
    判断标识符是否作为关键字出现

    以下情况不是关键字：obj.end / :end 符号 / end: 哈希键 / @end / $end
    """
    if begin > 0:
        prev = code[begin - 1]
        if prev in '@$':
            return False
        if prev == '.' and (begin < 2 or code[begin - 2] != '.'):
            return False
        if prev == ':' and (begin < 2 or code[begin - 2] != ':'):
            return False
    if end < len(code) and code[end] == ':' and (end + 1 >= len(code) or code[end + 1] != ':'):
        return False
    return True


def parse_def_header(code: str, def_begin: int) -> Optional[DefHeader]:
    """
    解析 def 头部

    Args:
        code: 屏蔽后的源码
        def_begin: def 关键字的偏移

    Returns:
        DefHeader；无法识别（如 `def` 后直接换行）时返回 None
    """
    m = DEF_HEADER_PATTERN.match(code, def_begin)
    if not m:
        return None

    n = len(code)
    i = m.end()
    j = i
    while j < n and code[j] in ' \t':
        j += 1

    args_code = ''
    if j < n and code[j] == '(':
        close = find_matching_paren(code, j)
        args_code = code[j + 1:close]
        i = min(close + 1, n)
    else:
        # 无括号参数：def get_user id, name
        line_end = j
        while line_end < n and code[line_end] not in '\n;':
            line_end += 1
        rest = code[j:line_end]
        if rest.strip() and not rest.lstrip().startswith('='):
            args_code = rest
            i = line_end

    k = i
    while k < n and code[k] in ' \t':
        k += 1
    endless = k < n and code[k] == '=' and (k + 1 >= n or code[k + 1] not in '=~>')

    return DefHeader(
        name=m.group('name'),
        name_begin=m.start('name'),
        name_end=m.end('name'),
        receiver=m.group('receiver'),
        args_code=args_code,
        header_end=i,
        endless=endless,
    )


def find_block_end(code: str, start: int) -> int:
    """
    从 start 开始查找与已开启块（depth=1）匹配的 end

    Args:
        code: 屏蔽后的源码
        start: def 头部结束的位置

    Returns:
        匹配的 end 关键字之后的偏移；未闭合时返回文本长度
    """
    depth = 1
    statement_start = True
    loop_pending = False
    pos = start

    while True:
        m = TOKEN_PATTERN.search(code, pos)
        if not m:
            return len(code)
        token = m.group(0)
        pos = m.end()

        if token in ('\n', ';'):
            statement_start = True
            loop_pending = False
            continue

        if not (token[0].isalpha() or token[0] == '_'):
            statement_start = token not in VALUE_TOKENS and not token[0].isdigit() and token != '::'
            continue

        if not _is_keyword_position(code, m.start(), m.end()):
            statement_start = False
            continue

        if token == 'end':
            depth -= 1
            if depth == 0:
                return m.end()
            statement_start = False
        elif token == 'def':
            header = parse_def_header(code, m.start())
            if header is None:
                depth += 1
            else:
                if not header.endless:
                    depth += 1
                pos = header.header_end
            statement_start = header is not None and header.endless
        elif token in BLOCK_OPENERS:
            depth += 1
            statement_start = True
        elif token in CONDITIONAL_OPENERS:
            if statement_start:
                depth += 1
                loop_pending = token in LOOP_KEYWORDS
            statement_start = True
        elif token == 'do':
            if loop_pending:
                loop_pending = False
            else:
                depth += 1
            statement_start = True
        else:
            statement_start = token in STATEMENT_PREFIX_KEYWORDS


def _line_end(code: str, pos: int) -> int:
    end = code.find('\n', pos)
    return len(code) if end == -1 else end


def find_method_definitions(content: str, file_path: str) -> List[MethodDeclaration]:
    """
    扫描文件中的所有方法定义（包括嵌套定义和 def self.xxx）

    Args:
        content: 文件完整内容
        file_path: 文件路径（原样写入 MethodDeclaration）

    Returns:
        按出现顺序排列的 MethodDeclaration 列表
    """
    code = blank_non_code(content)
    line_starts = build_line_index(content)
    declarations = []

    for m in re.finditer(r'\bdef\b', code):
        if not _is_keyword_position(code, m.start(), m.end()):
            continue
        header = parse_def_header(code, m.start())
        if header is None:
            continue

        if header.endless:
            end = _line_end(code, header.header_end)
        else:
            end = find_block_end(code, header.header_end)

        line, column = offset_to_line_col(line_starts, header.name_begin)
        start_line, _ = offset_to_line_col(line_starts, m.start())
        end_line, _ = offset_to_line_col(line_starts, max(m.start(), end - 1))

        declarations.append(MethodDeclaration(
            name=header.name,
            argument_count=count_arguments(header.args_code),
            source_text=content[m.start():end],
            name_range=SourceRange(header.name_begin, header.name_end, line, column),
            file_path=file_path,
            related_lines=(start_line, end_line),
            receiver=header.receiver,
        ))

    return declarations
