"""
Rule Engine Module - Python 规则引擎

支持:
- 文件内容缓存
- 多文件并行检查
- 自动修正（反复检查 + 修正，直到没有可修正的违规）
"""
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple
from concurrent.futures import ThreadPoolExecutor
from threading import Lock

from rblint.lib.logger import get_logger
from .config import RuleConfig
from .corrector import Corrector
from .errors import ClobberingError
from .file_cache import SOURCE_ENCODING, SOURCE_ERRORS, get_file_cache
from .reporter import Violation
from .rules import BaseRule, get_all_rules


# 单个文件自动修正的最大轮数（防止修正结果再次触发修正时死循环）
MAX_AUTOCORRECT_ITERATIONS = 10


class RuleEngine:
    """规则引擎 - 管理和执行规则"""

    def __init__(self, project_root: str, parallel: bool = True, max_workers: int = 0,
                 file_cache_size_mb: int = 100):
        """
        Args:
            project_root: 项目根目录
            parallel: 是否启用并行执行
            max_workers: 最大工作线程数（0 表示自动：min(32, cpu_count * 2)）
            file_cache_size_mb: 文件缓存最大容量（MB）
        """
        self.project_root = Path(project_root)
        self.rules: List[BaseRule] = []
        self.logger = get_logger("rblint")
        self.parallel = parallel
        self.max_workers = max_workers
        self._file_cache = get_file_cache(file_cache_size_mb)
        self.logger.debug(f"RuleEngine initialized: project_root={project_root}, parallel={parallel}")

    def load_builtin_rules(self, rules_config: Dict[str, RuleConfig]):
        """加载内置规则"""
        self.logger.debug("Loading builtin rules...")

        loaded_count = 0
        for rule_class in get_all_rules():
            rule_id = rule_class.identifier
            config = rules_config.get(rule_id, RuleConfig())

            if config.enabled:
                self.add_rule(rule_class(config))
                loaded_count += 1
                self.logger.debug(f"Loaded rule: {rule_id} (severity={config.severity})")
            else:
                self.logger.debug(f"Skipped disabled rule: {rule_id}")

        self.logger.info(f"Loaded {loaded_count} builtin rules")

    def add_rule(self, rule: BaseRule):
        """直接注册规则实例"""
        rule.project_root = self.project_root.resolve()
        self.rules.append(rule)

    def check_content(self, file_path: str, content: str, lines: Optional[List[str]] = None,
                      changed_lines: Optional[Set[int]] = None) -> List[Violation]:
        """
        对一段已读入的源码执行所有规则

        单条规则异常只记录日志，不影响其他规则。
        """
        if lines is None:
            lines = content.split('\n')

        violations = []
        for rule in self.rules:
            if not rule.enabled:
                continue

            try:
                violations.extend(rule.check(
                    file_path=file_path,
                    content=content,
                    lines=lines,
                    changed_lines=changed_lines or set()
                ))
            except Exception as e:
                self.logger.warning(f"Rule {rule.identifier} failed on {file_path}: {e}")

        return violations

    def check_file(self, file_path: str, changed_lines: Optional[Set[int]] = None) -> List[Violation]:
        """
        对单个文件执行所有规则检查

        Args:
            file_path: 文件路径
            changed_lines: 需要检查的行号集合（None 或空集合表示检查全部）
        Returns:
            违规列表
        """
        cached = self._file_cache.get(file_path)
        if cached is None:
            return []

        content, lines = cached
        return self.check_content(file_path, content, lines, changed_lines)

    def check_files(self, files: List[str], changed_lines_map: Optional[Dict[str, Set[int]]] = None) -> List[Violation]:
        """
        对多个文件执行检查（支持并行）

        Args:
            files: 文件路径列表
            changed_lines_map: {file_path: changed_lines_set}
        Returns:
            所有违规列表
        """
        self.logger.info(f"Checking {len(files)} files with {len(self.rules)} rules (parallel={self.parallel})")

        def check_single_file(file_path: str) -> List[Violation]:
            changed_lines = changed_lines_map.get(file_path, set()) if changed_lines_map else None
            return self.check_file(file_path, changed_lines)

        violations = self._run_per_file(files, check_single_file)
        self.logger.info(f"Total violations found: {len(violations)}")
        return violations

    def autocorrect_content(self, file_path: str, content: str) -> Tuple[str, List[Violation], int]:
        """
        自动修正一段源码

        每轮检查后把所有可修正违规的修改登记到同一个 Corrector；
        区间冲突的修改留到下一轮重新检查后再应用。

        Returns:
            (修正后的源码, 剩余违规, 已修正的违规数)
        """
        corrected_count = 0

        for iteration in range(MAX_AUTOCORRECT_ITERATIONS):
            violations = self.check_content(file_path, content)
            correctable = [v for v in violations if v.correctable]
            if not correctable:
                return content, violations, corrected_count

            corrector = Corrector(content)
            applied = 0
            for v in correctable:
                try:
                    v.correction(corrector)
                    applied += 1
                except ClobberingError as e:
                    self.logger.debug(f"Deferred correction at {file_path}:{v.line}:{v.column}: {e}")

            if applied == 0:
                return content, violations, corrected_count

            new_content = corrector.process()
            corrected_count += applied
            self.logger.debug(f"Autocorrect pass {iteration + 1} on {file_path}: {applied} corrections")

            if new_content == content:
                return content, violations, corrected_count
            content = new_content

        self.logger.warning(f"Autocorrect did not converge after {MAX_AUTOCORRECT_ITERATIONS} passes: {file_path}")
        return content, self.check_content(file_path, content), corrected_count

    def autocorrect_file(self, file_path: str) -> Tuple[List[Violation], int]:
        """
        自动修正单个文件并写回磁盘（内容不变时不写）

        Returns:
            (剩余违规, 已修正的违规数)
        """
        cached = self._file_cache.get(file_path)
        if cached is None:
            return [], 0

        original, _ = cached
        content, remaining, corrected_count = self.autocorrect_content(file_path, original)

        if content != original:
            with open(file_path, 'w', encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS, newline='') as f:
                f.write(content)
            self._file_cache.invalidate(file_path)
            self.logger.info(f"Corrected {corrected_count} violations in {file_path}")

        return remaining, corrected_count

    def autocorrect_files(self, files: List[str]) -> Tuple[List[Violation], int]:
        """
        自动修正多个文件（支持并行，每个文件只由一个线程处理）

        Returns:
            (剩余违规, 已修正的违规总数)
        """
        self.logger.info(f"Autocorrecting {len(files)} files with {len(self.rules)} rules (parallel={self.parallel})")
        counter_lock = Lock()
        totals = {"corrected": 0}

        def correct_single_file(file_path: str) -> List[Violation]:
            remaining, corrected_count = self.autocorrect_file(file_path)
            with counter_lock:
                totals["corrected"] += corrected_count
            return remaining

        violations = self._run_per_file(files, correct_single_file)
        self.logger.info(f"Corrected {totals['corrected']} violations, {len(violations)} remaining")
        return violations, totals["corrected"]

    def _run_per_file(self, files: List[str], task: Callable[[str], List[Violation]]) -> List[Violation]:
        """对每个文件执行 task；并行时结果仍按 files 的顺序合并"""
        if not self.parallel or len(files) <= 1:
            results = [self._run_task(task, f) for f in files]
        else:
            workers = self.max_workers if self.max_workers > 0 else min(32, (os.cpu_count() or 1) * 2)
            workers = min(workers, len(files))
            self.logger.debug(f"Starting parallel run with {workers} workers")

            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rblint") as executor:
                results = list(executor.map(lambda f: self._run_task(task, f), files))

            stats = self._file_cache.get_stats()
            self.logger.debug(f"File cache stats: hit_rate={stats['hit_rate']:.1f}%, "
                              f"cached_files={stats['cached_files']}, size={stats['cache_size_mb']:.2f}MB")

        return [v for file_violations in results for v in file_violations]

    def _run_task(self, task: Callable[[str], List[Violation]], file_path: str) -> List[Violation]:
        """单个文件失败只记录日志，不影响其他文件"""
        try:
            violations = task(file_path)
        except Exception as e:
            self.logger.error(f"Failed to process {file_path}: {e}")
            return []
        if violations:
            self.logger.debug(f"{Path(file_path).name}: {len(violations)} violations")
        return violations

    @staticmethod
    def get_all_rule_display_names() -> Dict[str, Dict[str, str]]:
        """获取所有内置规则的显示信息"""
        return {
            rule_class.identifier: {
                "display_name": rule_class.display_name or rule_class.name,
                "description": rule_class.description,
            }
            for rule_class in get_all_rules()
        }
