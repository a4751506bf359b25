"""
Rule Utilities - 规则公共工具模块

Ruby 源码的字符级处理：屏蔽字符串 / 正则 / 注释 / heredoc，括号配对，参数计数。
所有函数都保持字符偏移不变，屏蔽后的文本与原文逐字符对齐。
"""
import bisect
import hashlib
import re
from typing import List, Tuple


# % 字面量的成对定界符
PERCENT_PAIRS = {'(': ')', '[': ']', '{': '}', '<': '>'}

# % 字面量中不做插值的类型
NON_INTERPOLATING_PERCENT = set('qwis')

# heredoc 起始标记: <<~SQL, <<-EOS, <<'EOS', <<EOS
HEREDOC_PATTERN = re.compile(r'<<([~-]?)(["\'`]?)([A-Za-z_]\w*)\2')

# 这些关键字之后的 / 是正则字面量的开始
REGEX_PRECEDING_KEYWORDS = frozenset({
    'if', 'elsif', 'unless', 'while', 'until', 'when', 'in', 'and', 'or', 'not',
    'return', 'then', 'else', 'do', 'case', 'yield',
})

# =begin 块注释的结束行
BLOCK_COMMENT_END_PATTERN = re.compile(r"^=end\b.*$", re.MULTILINE)


def _blank(out: List[str], start: int, end: int):
    """把 [start, end) 区间替换为空格（换行保留，保证行号不变）"""
    for k in range(start, end):
        if out[k] != '\n':
            out[k] = ' '


def _skip_interpolation(content: str, out: List[str], i: int) -> int:
    """
    跳过 #{...} 插值内容

    Args:
        i: '#{' 之后的第一个字符位置

    Returns:
        匹配的 '}' 之后的位置
    """
    n = len(content)
    depth = 1
    j = i
    while j < n:
        ch = content[j]
        if ch in '"\'`':
            j = _skip_string(content, out, j + 1, ch, ch, interpolate=(ch != "'"))
            continue
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                break
        j += 1
    _blank(out, i, min(j + 1, n))
    return min(j + 1, n)


def _skip_string(content: str, out: List[str], i: int, open_ch: str, close_ch: str,
                 interpolate: bool = True) -> int:
    """
    跳过字符串字面量并屏蔽其内容（定界符保留）

    Args:
        i: 开始定界符之后的位置
        open_ch / close_ch: 定界符；两者不同时支持嵌套，如 %w(a (b) c)

    Returns:
        结束定界符之后的位置（未闭合时返回文件末尾）
    """
    n = len(content)
    depth = 1
    start = i
    while i < n:
        ch = content[i]
        if ch == '\\':
            i += 2
            continue
        if interpolate and ch == '#' and i + 1 < n and content[i + 1] == '{':
            _blank(out, start, i + 2)
            i = _skip_interpolation(content, out, i + 2)
            start = i
            continue
        if open_ch != close_ch and ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                _blank(out, start, i)
                return i + 1
        i += 1
    _blank(out, start, n)
    return n


def _skip_heredoc_bodies(content: str, out: List[str], i: int,
                         pending: List[Tuple[str, str]]) -> int:
    """
    屏蔽挂起的 heredoc 正文

    Args:
        i: heredoc 起始行之后的下一行行首
        pending: [(flag, terminator)]，flag 为 '~' / '-' 时终止符允许缩进

    Returns:
        最后一个终止符所在行之后的位置
    """
    n = len(content)
    for flag, terminator in pending:
        while i < n:
            line_end = content.find('\n', i)
            if line_end == -1:
                line_end = n
            line = content[i:line_end]
            if (line.strip() if flag else line) == terminator:
                i = line_end + 1
                break
            _blank(out, i, line_end)
            i = line_end + 1
    return min(i, n)


def _is_percent_literal(content: str, i: int) -> bool:
    """判断 i 处的 % 是否是 %w[] / %q() 等字面量（而不是取模运算符）"""
    n = len(content)
    if i > 0 and (content[i - 1].isalnum() or content[i - 1] in '_)]}'):
        return False
    j = i + 1
    if j < n and content[j] in 'qQwWiIrsx':
        j += 1
    return j < n and not content[j].isalnum() and not content[j].isspace() and content[j] != '='


def _is_regex_literal(content: str, i: int) -> bool:
    """
    判断 i 处的 / 是否开始一个正则字面量（而不是除号）

    / 处于操作数位置时是正则：行首、运算符或 ( , 之后、if / when 等关键字之后；
    `foo /x/` 这种标识符后有空格且 / 后紧跟非空白的写法也按正则处理。
    """
    n = len(content)
    j = i - 1
    while j >= 0 and content[j] in ' \t':
        j -= 1
    if j < 0 or content[j] in '\n\r':
        return True

    prev = content[j]
    # :/ 符号
    if prev == ':' and j == i - 1:
        return False
    if prev in '(,=~!|&{[;?:+-*<>%^':
        return True
    if not (prev.isalnum() or prev == '_'):
        return False

    k = j
    while k >= 0 and (content[k].isalnum() or content[k] == '_'):
        k -= 1
    word = content[k + 1:j + 1]
    if word in REGEX_PRECEDING_KEYWORDS:
        return True
    # def / 运算符方法定义、数字除法
    if word == 'def' or word[0].isdigit() or j == i - 1:
        return False
    if i + 1 >= n or content[i + 1].isspace() or content[i + 1] == '=':
        return False
    # 有歧义时要求同一行内闭合
    line_end = content.find('\n', i)
    return '/' in content[i + 1:n if line_end == -1 else line_end]


def _is_char_literal(content: str, i: int) -> bool:
    """?a 形式的字符字面量（三元运算符的 ? 后面一般是空格）"""
    n = len(content)
    if i + 1 >= n or content[i + 1].isspace():
        return False
    if i > 0 and content[i - 1] not in ' \t(,=[':
        return False
    return i + 2 >= n or not (content[i + 2].isalnum() or content[i + 2] == '_')


def blank_non_code(content: str) -> str:
    """
    屏蔽字符串、正则、注释、=begin/=end 块和 heredoc 正文

    返回与原文等长的文本，便于用同一套偏移量定位原文。

    Example:
        ```ruby
        def get_user(id) # get(x)
          "get(#{id})"
        end
        ```
        注释与字符串内容全部变为空格，结构扫描只看到 def / end。
    """
    out = list(content)
    n = len(content)
    pending_heredocs: List[Tuple[str, str]] = []
    i = 0

    while i < n:
        c = content[i]

        if c == '\n':
            i += 1
            if pending_heredocs:
                i = _skip_heredoc_bodies(content, out, i, pending_heredocs)
                pending_heredocs = []
            continue

        # =begin ... =end 块注释（必须顶格）
        if c == '=' and (i == 0 or content[i - 1] == '\n') and content.startswith('=begin', i):
            end_match = BLOCK_COMMENT_END_PATTERN.search(content, i)
            end = end_match.end() if end_match else n
            _blank(out, i, end)
            i = end
            continue

        if c == '#':
            end = content.find('\n', i)
            end = n if end == -1 else end
            _blank(out, i, end)
            i = end
            continue

        if c in '"\'`':
            i = _skip_string(content, out, i + 1, c, c, interpolate=(c != "'"))
            continue

        if c == '%' and _is_percent_literal(content, i):
            j = i + 1
            kind = ''
            if content[j] in 'qQwWiIrsx':
                kind = content[j]
                j += 1
            open_ch = content[j]
            close_ch = PERCENT_PAIRS.get(open_ch, open_ch)
            i = _skip_string(content, out, j + 1, open_ch, close_ch,
                             interpolate=kind not in NON_INTERPOLATING_PERCENT)
            continue

        if c == '<' and content.startswith('<<', i) and (i == 0 or content[i - 1] != '<'):
            m = HEREDOC_PATTERN.match(content, i)
            if m and (m.group(1) or m.group(2) or m.group(3).isupper()):
                pending_heredocs.append((m.group(1), m.group(3)))
                i = m.end()
                continue

        if c == '/' and _is_regex_literal(content, i):
            i = _skip_string(content, out, i + 1, '/', '/')
            continue

        if c == '?' and _is_char_literal(content, i):
            _blank(out, i + 1, i + 2)
            i += 2
            continue

        i += 1

    return ''.join(out)


def find_matching_paren(code: str, open_index: int, open_char: str = '(', close_char: str = ')') -> int:
    """
    查找与 open_index 处开括号匹配的闭括号位置

    code 应当是 blank_non_code 处理后的文本（字符串中的括号已屏蔽）。

    Returns:
        闭括号的偏移；未闭合时返回文本长度
    """
    depth = 0
    for i in range(open_index, len(code)):
        ch = code[i]
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return i
    return len(code)


def count_arguments(args_code: str) -> int:
    """
    统计参数个数（顶层逗号分隔）

    Example:
        count_arguments("a, b = {x: 1, y: 2}, *rest") → 3
        count_arguments("  ") → 0
    """
    depth = 0
    count = 0
    has_content = False
    for ch in args_code:
        if ch in '([{':
            depth += 1
        elif ch in ')]}':
            depth -= 1
        elif ch == ',' and depth == 0:
            if has_content:
                count += 1
            has_content = False
            continue
        if not ch.isspace():
            has_content = True
    if has_content:
        count += 1
    return count


def build_line_index(content: str) -> List[int]:
    """每行行首的偏移量（0-indexed 列表，第 i 项对应第 i+1 行）"""
    starts = [0]
    for m in re.finditer('\n', content):
        starts.append(m.end())
    return starts


def offset_to_line_col(line_starts: List[int], offset: int) -> Tuple[int, int]:
    """偏移量转换为 (line, column)，均为 1-indexed"""
    line = bisect.bisect_right(line_starts, offset)
    return line, offset - line_starts[line - 1] + 1


def compute_context_hash(context: str) -> str:
    """
    计算代码内容哈希（去除空白差异，不含 rule_id）

    Returns:
        MD5 哈希字符串（16 字符）
    """
    normalized = ''.join(line.strip() for line in context.split('\n'))
    return hashlib.md5(normalized.encode()).hexdigest()[:16]
