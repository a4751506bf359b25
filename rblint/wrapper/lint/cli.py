#!/usr/bin/env python3
"""
rblint - 检查带参数的 get_/set_ Ruby 方法并可自动改名

Usage:
    rblint                              # 检查当前目录下所有 .rb 文件
    rblint -p path/to/app -a            # 自动修正
    rblint -f app/models/user.rb -j     # 只检查指定文件，输出 JSON

Exit codes:
    0    没有 error 级别违规（或 fail_on_error: false）
    1    存在 error 级别违规，或配置错误 / 运行异常
    130  被 Ctrl-C 中断
"""
import argparse
import os
import sys
import traceback
from typing import List, Optional

from rblint import __version__
from rblint.core.lint.errors import ConfigError
from rblint.core.lint.rule_engine import RuleEngine
from rblint.lib.logger import get_logger, cleanup_old_logs, get_current_log_file
from rblint.wrapper.lint.linter import RbLint


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rblint",
        description="Ruby 方法命名检查：带参数的 get_/set_ 方法",
        epilog="Exit codes: 0 ok, 1 errors or config problems, 130 interrupted",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument("--config", "-c", default=None,
                        help="配置文件路径（默认查找 .rblint/config.yaml、.rblint.yaml、.rblint.yml）")
    parser.add_argument("--project-root", "-p", default=None,
                        help="项目根目录（默认: 当前目录）")
    parser.add_argument("--files", "-f", nargs="+",
                        help="只检查这些文件")

    mode = parser.add_argument_group("模式")
    mode.add_argument("--autocorrect", "-a", action="store_true",
                      help="自动修正并直接改写文件")
    mode.add_argument("--list-rules", action="store_true",
                      help="列出内置规则后退出")

    output = parser.add_argument_group("输出")
    output.add_argument("--json-output", "-j", action="store_true",
                        help="输出 JSON")
    output.add_argument("--plain-output", action="store_true",
                        help="易读格式（默认 path:line:col 编译器格式）")
    output.add_argument("--verbose", "-v", action="store_true",
                        help="在 stderr 输出进度和日志")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def list_rules():
    for rule_id, info in RuleEngine.get_all_rule_display_names().items():
        print(f"{rule_id}: {info['display_name']} - {info['description']}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.list_rules:
        list_rules()
        return 0

    logger = get_logger("rblint")
    if args.verbose:
        logger.enable_console()
    if args.project_root is None:
        args.project_root = os.getcwd()

    try:
        removed = cleanup_old_logs()
        if removed:
            logger.debug(f"Removed {removed} expired log files")

        exit_code = RbLint(args).run()
        logger.debug(f"Exit code: {exit_code}")
        return exit_code
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        print(f"Config error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e} (log: {get_current_log_file()})", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
