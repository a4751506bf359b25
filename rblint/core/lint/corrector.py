"""
Corrector - 自动修正编辑缓冲区

规则的 correction 回调只登记修改（区间 + 替换文本），不直接改写源码；
process() 统一从后往前应用，保证前面的偏移量不受影响。
"""
from typing import List, NamedTuple, TYPE_CHECKING

from .errors import ClobberingError

if TYPE_CHECKING:
    from .rules.method_scanner import SourceRange


class Edit(NamedTuple):
    """单个修改：把 source[begin:end] 替换为 text"""
    begin: int
    end: int
    text: str


class Corrector:
    """
    绑定到单个文件源码的编辑缓冲区

    Usage:
        corrector = Corrector(content)
        violation.correction(corrector)
        new_content = corrector.process()
    """

    def __init__(self, source: str):
        self.source = source
        self._edits: List[Edit] = []

    @property
    def edits(self) -> List[Edit]:
        return list(self._edits)

    def __len__(self) -> int:
        return len(self._edits)

    def replace(self, source_range: "SourceRange", text: str):
        """
        替换区间内的文本

        Args:
            source_range: 待替换区间（begin/end 为字符偏移，左闭右开）
            text: 替换文本

        Raises:
            ClobberingError: 与已登记的修改区间重叠
        """
        begin, end = source_range.begin, source_range.end
        if not 0 <= begin <= end <= len(self.source):
            raise ClobberingError(f"Range {begin}..{end} is outside the source (length {len(self.source)})")

        for edit in self._edits:
            if begin < edit.end and edit.begin < end:
                raise ClobberingError(
                    f"Range {begin}..{end} overlaps a pending edit at {edit.begin}..{edit.end}"
                )
            # 同一位置的两次插入无法确定先后
            if begin == end == edit.begin == edit.end:
                raise ClobberingError(f"Conflicting insertions at offset {begin}")

        self._edits.append(Edit(begin, end, text))

    def process(self) -> str:
        """应用所有修改，返回新的源码"""
        result = self.source
        for edit in sorted(self._edits, key=lambda e: e.begin, reverse=True):
            result = result[:edit.begin] + edit.text + result[edit.end:]
        return result
