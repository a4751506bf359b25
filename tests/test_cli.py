"""
End-to-end tests for the rblint command line.
"""
import json

import pytest

from rblint.wrapper.lint.cli import main, parse_args
from rblint.wrapper.lint.linter import is_excluded


USER_MODEL = """\
class User
  def get_user(id)
    find(id)
  end
end
"""


def run(project, *extra):
    return main(["--project-root", str(project.path), *extra])


def test_parse_args_defaults():
    args = parse_args([])
    assert args.project_root is None
    assert args.autocorrect is False
    assert args.files is None


def test_reports_violations_in_compiler_format(project, capsys):
    path = project.write("app/models/user.rb", USER_MODEL)
    project.write("app/models/plain.rb", "def name\n  @name\nend\n")

    assert run(project) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == [
        f"{path.resolve()}:2:7: warning: Avoid using `get_` prefix for methods with arguments. "
        "Consider using `user_for` or `find_user` instead. [method_name_get_prefix]"
    ]


def test_excluded_directories_are_skipped(project, capsys):
    project.write("vendor/bundle/gem.rb", USER_MODEL)
    project.write("db/schema.rb", USER_MODEL)

    assert run(project) == 0
    assert capsys.readouterr().out == ""


def test_error_severity_fails(project, capsys):
    project.write(".rblint.yml", "python_rules:\n  method_name_get_prefix:\n    severity: error\n")
    project.write("app/models/user.rb", USER_MODEL)

    assert run(project) == 1
    assert ": error: " in capsys.readouterr().out


def test_fail_on_error_false(project):
    project.write(".rblint.yml", """\
        fail_on_error: false
        python_rules:
          method_name_get_prefix:
            severity: error
        """)
    project.write("app/models/user.rb", USER_MODEL)

    assert run(project) == 0


def test_explicit_config_path(project, capsys):
    project.write("config/lint.yaml", "python_rules:\n  method_name_get_prefix: false\n")
    project.write("app/models/user.rb", USER_MODEL)

    assert run(project, "--config", "config/lint.yaml") == 0
    assert capsys.readouterr().out == ""


def test_files_option(project, capsys):
    project.write("app/models/user.rb", USER_MODEL)
    other = project.write("app/models/account.rb", "def set_limit(n)\n  @limit = n\nend\n")

    assert run(project, "--files", "app/models/account.rb", "missing.rb") == 0

    out = capsys.readouterr().out
    assert str(other.resolve()) in out
    assert "user.rb" not in out
    assert "`limit=` setter" in out


def test_json_output(project, capsys):
    project.write("app/api_clients/orders.rb", "def set_status(id, s)\n  put(id, s)\nend\n")

    assert run(project, "--json-output") == 0

    data = json.loads(capsys.readouterr().out)
    assert data["summary"]["total"] == 1
    assert data["summary"]["correctable"] == 1
    violation = data["violations"][0]
    assert violation["sub_type"] == "set_with_arguments_api"
    assert violation["correctable"] is True
    assert "`create_status`, `put_status` or `update_status`" in violation["message"]
    assert data["run_id"]


def test_autocorrect_rewrites_files(project, capsys):
    project.write("app/models/user.rb", USER_MODEL)
    project.write("app/api_clients/orders.rb", "def set_status(id, s)\n  put(id, s)\nend\n")

    assert run(project, "--autocorrect") == 0

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Corrected 2 offense(s)." in captured.err
    assert project.read("app/models/user.rb") == USER_MODEL.replace("def get_user", "def user_for")
    assert project.read("app/api_clients/orders.rb") == "def create_status(id, s)\n  put(id, s)\nend\n"


def test_autocorrect_disabled_by_config_still_reports(project, capsys):
    project.write(".rblint/config.yaml", """\
        python_rules:
          method_name_get_prefix:
            params:
              autocorrect: false
        """)
    project.write("app/models/user.rb", USER_MODEL)

    assert run(project, "-a") == 0
    assert "get_user" in project.read("app/models/user.rb")
    assert "[method_name_get_prefix]" in capsys.readouterr().out


def test_invalid_pattern_is_a_config_error(project, capsys):
    project.write(".rblint.yml", """\
        python_rules:
          method_name_get_prefix:
            params:
              http_get_patterns: ["(unclosed"]
        """)
    project.write("app/models/user.rb", USER_MODEL)

    assert run(project) == 1
    assert "Config error" in capsys.readouterr().err


def test_no_files(project, capsys):
    assert run(project, "--verbose") == 0
    assert "No files to check." in capsys.readouterr().err


def test_list_rules(capsys):
    assert main(["--list-rules"]) == 0
    assert capsys.readouterr().out.startswith("method_name_get_prefix: get_/set_ 方法命名")


@pytest.mark.parametrize("rel_path, patterns, expected", [
    ("vendor/bundle/gem.rb", ["vendor/**"], True),
    ("vendor/gem.rb", ["vendor"], True),
    ("vendor/gem.rb", ["vendor/"], True),
    ("vendored/gem.rb", ["vendor"], False),
    ("db/schema.rb", ["db/schema.rb"], True),
    ("app/models/user.rb", ["vendor/**", "tmp/**"], False),
    ("app/models/user_spec.rb", ["**/*_spec.rb"], True),
])
def test_is_excluded(rel_path, patterns, expected):
    assert is_excluded(rel_path, patterns) is expected
