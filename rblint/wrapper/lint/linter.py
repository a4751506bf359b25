"""
RbLint 主类模块

一次运行：加载配置 → 收集 .rb 文件 → 检查（或自动修正）→ 输出结果。
"""
import argparse
import fnmatch
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from rblint.core.lint.config import ConfigLoader, LintConfig
from rblint.core.lint.reporter import Reporter, Violation
from rblint.core.lint.rule_engine import RuleEngine
from rblint.lib.logger import get_logger, LogContext, log_lint_start, log_lint_end


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """
    判断相对路径是否被排除

    模式按 fnmatch 匹配（* 可跨越目录）；不含通配符的模式视为目录，匹配其下所有文件。
    """
    for pattern in patterns:
        if fnmatch.fnmatch(rel_path, pattern):
            return True
        directory = pattern.rstrip('/')
        if not any(ch in directory for ch in '*?[') and rel_path.startswith(directory + '/'):
            return True
    return False


class RbLint:
    """RbLint 主类"""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.project_root = Path(args.project_root).resolve()
        self.config: Optional[LintConfig] = None
        self.reporter = Reporter("plain" if args.plain_output else "compiler")
        self.logger = get_logger("rblint")
        self.run_id = str(uuid.uuid4())
        self.started_at = datetime.now().astimezone().isoformat()

    def run(self) -> int:
        """执行一次检查，返回进程退出码"""
        started = time.perf_counter()
        self.logger.debug(f"Arguments: {vars(self.args)}")

        with LogContext(self.logger, "config_loading"):
            self.config = self._load_config()

        with LogContext(self.logger, "file_discovery"):
            files = self._collect_files()

        if not files:
            self.logger.info("No files to check")
            self._echo("No files to check.")
            return 0

        log_lint_start(str(self.project_root), len(files), self.args.autocorrect)
        self.logger.log_list("Files", files)
        self._echo(f"Checking {len(files)} file(s)...")

        with LogContext(self.logger, "python_rules_check"):
            self.reporter.add_violations(self._lint(files))

        self.reporter.deduplicate()
        self.reporter.sort()
        summary = self.reporter.get_summary()
        log_lint_end(summary["total"], summary["errors"], summary["warnings"], time.perf_counter() - started)

        if self.args.json_output:
            print(self.reporter.to_json(run_id=self.run_id, extra={"created_at": self.started_at}))
            exit_code = 1 if self.reporter.has_errors else 0
        else:
            exit_code = self.reporter.report()
            if self.args.verbose:
                self.reporter.print_summary()

        return exit_code if self.config.fail_on_error else 0

    def _echo(self, message: str):
        """--verbose 时输出到 stderr"""
        if self.args.verbose:
            print(message, file=sys.stderr)

    def _load_config(self) -> LintConfig:
        """--config 优先（相对路径基于项目根目录），否则查找默认位置"""
        config_path = self.args.config
        if config_path:
            path = Path(config_path)
            if not path.is_absolute():
                path = self.project_root / path
            if path.exists():
                config_path = str(path)
            else:
                self.logger.warning(f"Config file not found: {path}")
                config_path = None

        config_path = config_path or ConfigLoader.find_config(self.project_root)
        self.logger.info(f"Loading config from: {config_path or '<defaults>'}")

        config = ConfigLoader(config_path).load()
        self.logger.debug(f"Included: {config.included}, excluded: {config.excluded}, "
                          f"fail_on_error: {config.fail_on_error}")
        return config

    def _collect_files(self) -> List[str]:
        """
        --files 指定时只检查这些文件（不应用 included / excluded），
        否则按 included 模式在项目根目录下查找并过滤 excluded
        """
        if self.args.files:
            return self._explicit_files(self.args.files)

        found = set()
        for pattern in self.config.included:
            for path in self.project_root.glob(pattern):
                if not path.is_file():
                    continue
                rel_path = path.relative_to(self.project_root).as_posix()
                if is_excluded(rel_path, self.config.excluded):
                    self.logger.debug(f"Excluded: {rel_path}")
                    continue
                found.add(str(path.resolve()))
        return sorted(found)

    def _explicit_files(self, names: List[str]) -> List[str]:
        files = []
        for name in names:
            path = Path(name)
            if not path.is_absolute():
                path = self.project_root / path
            if path.is_file():
                files.append(str(path.resolve()))
            else:
                self.logger.warning(f"File not found, skipped: {name}")
        return list(dict.fromkeys(files))

    def _lint(self, files: List[str]) -> List[Violation]:
        perf = self.config.performance
        engine = RuleEngine(
            str(self.project_root),
            parallel=perf.parallel,
            max_workers=perf.max_workers,
            file_cache_size_mb=perf.file_cache_size_mb,
        )
        engine.load_builtin_rules(self.config.python_rules)

        mode = f"parallel ({perf.max_workers or 'auto'} workers)" if perf.parallel else "sequential"
        self._echo(f"Running {len(engine.rules)} rule(s), {mode}: "
                   f"{', '.join(r.identifier for r in engine.rules) or '-'}")

        if not self.args.autocorrect:
            return engine.check_files(files)

        remaining, corrected = engine.autocorrect_files(files)
        self.reporter.corrected_count = corrected
        if corrected:
            print(f"Corrected {corrected} offense(s).", file=sys.stderr)
        return remaining
