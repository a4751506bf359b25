"""
Tests for the get_/set_ method naming rule: classification, suggestions,
messages and the rename correction.
"""
from pathlib import Path

import pytest

from rblint.core.lint.config import RuleConfig
from rblint.core.lint.corrector import Corrector
from rblint.core.lint.errors import ConfigError
from rblint.core.lint.reporter import Severity
from rblint.core.lint.rules.method_scanner import find_method_definitions
from rblint.core.lint.rules.naming_rules.method_name_get_prefix_rule import (
    DEFAULT_PATTERNS,
    MethodNameGetPrefixRule,
    Outcome,
    PatternSets,
    SubType,
    can_rename,
    classify,
    compile_patterns,
    format_message,
    suggestions_for,
)


def first_def(source: str, file_path: str = "app/models/user.rb"):
    return find_method_definitions(source, file_path)[0]


class TestClassify:
    def test_get_with_argument_is_flagged(self):
        decl = first_def("def get_user(id)\n  User.find(id)\nend\n")
        assert classify(decl) is Outcome.FLAG_GET
        assert suggestions_for(decl.name, Outcome.FLAG_GET) == ("user_for",)

    def test_get_without_arguments_is_skipped(self):
        decl = first_def("def get_config()\n  @config\nend\n")
        assert decl.argument_count == 0
        assert classify(decl) is Outcome.SKIP

    def test_get_without_parentheses_is_skipped(self):
        assert classify(first_def("def get_config\n  @config\nend\n")) is Outcome.SKIP

    def test_http_get_after_regex_with_end_is_skipped(self):
        source = 'def get_data(id)\n  return nil if id =~ /end/\n  connection.get("/data")\nend\n'
        assert classify(first_def(source)) is Outcome.SKIP

    def test_get_making_http_get_request_is_skipped(self):
        decl = first_def("def get_response(req)\n  connection.get(req)\nend\n")
        assert classify(decl) is Outcome.SKIP

    @pytest.mark.parametrize("body", [
        "Net::HTTP.get(URI(url))",
        "RestClient.get(url)",
        "Faraday.get(url)",
        "request = Net::HTTP::Get.new(uri)",
        "http.request(req)",
        "https.request(req)",
        "client.get  (url)",
    ])
    def test_http_get_indicators(self, body):
        decl = first_def(f"def get_page(url)\n  {body}\nend\n")
        assert classify(decl) is Outcome.SKIP

    def test_bare_get_wrapper_in_api_file_is_skipped(self):
        source = "def get_balance(account)\n  get(path)\nend\n"
        decl = first_def(source, "lib/clients/payment_client.rb")
        assert classify(decl) is Outcome.SKIP

    def test_bare_get_wrapper_outside_api_file_is_flagged(self):
        source = "def get_balance(account)\n  get(path)\nend\n"
        decl = first_def(source, "app/models/account.rb")
        assert classify(decl) is Outcome.FLAG_GET

    def test_get_in_api_file_without_wrapper_is_flagged(self):
        source = "def get_balance(account)\n  account.balance\nend\n"
        decl = first_def(source, "lib/clients/payment_client.rb")
        assert classify(decl) is Outcome.FLAG_GET

    def test_set_in_plain_file_suggests_setter(self):
        decl = first_def("def set_limit(n)\n  @limit = n\nend\n", "app/models/quota.rb")
        assert classify(decl) is Outcome.FLAG_SET_NON_API
        assert suggestions_for(decl.name, Outcome.FLAG_SET_NON_API) == ("limit=",)

    def test_set_in_api_file_suggests_three_names(self):
        decl = first_def("def set_status(id, s)\n  put(id, s)\nend\n", "app/api_clients/orders.rb")
        assert classify(decl) is Outcome.FLAG_SET_API
        assert suggestions_for(decl.name, Outcome.FLAG_SET_API) == (
            "create_status", "put_status", "update_status",
        )

    def test_set_without_arguments_is_skipped(self):
        assert classify(first_def("def set_defaults\n  @a = 1\nend\n")) is Outcome.SKIP

    @pytest.mark.parametrize("source", [
        "def fetch_user(id)\nend\n",
        "def getter(x)\nend\n",
        "def settle(x)\nend\n",
        "def user_for(id)\nend\n",
    ])
    def test_other_names_are_skipped(self, source):
        assert classify(first_def(source)) is Outcome.SKIP

    def test_singleton_method_is_classified(self):
        decl = first_def("def self.get_user(id)\n  find(id)\nend\n")
        assert decl.receiver == "self"
        assert classify(decl) is Outcome.FLAG_GET

    def test_endless_method_is_classified(self):
        decl = first_def("def get_double(x) = x * 2\n")
        assert classify(decl) is Outcome.FLAG_GET


class TestPatternSets:
    @pytest.mark.parametrize("path", [
        "lib/payment_client.rb",
        "app/controllers/UsersController.rb",
        "lib/api/orders.rb",
        "lib/clients/stripe.rb",
        "app\\api\\orders.rb",
    ])
    def test_api_files(self, path):
        assert DEFAULT_PATTERNS.is_api_file(path)

    @pytest.mark.parametrize("path", [
        "app/models/user.rb",
        "lib/tasks/cleanup.rb",
        "app/apiary/hive.rb",
    ])
    def test_non_api_files(self, path):
        assert not DEFAULT_PATTERNS.is_api_file(path)

    def test_replaced_http_get_patterns(self):
        patterns = PatternSets(http_get=compile_patterns("http_get_patterns", [r"fetch_remote\("]))
        remote = first_def("def get_page(url)\n  fetch_remote(url)\nend\n")
        plain = first_def("def get_page(url)\n  connection.get(url)\nend\n")

        assert classify(remote, patterns) is Outcome.SKIP
        assert classify(plain, patterns) is Outcome.FLAG_GET

    def test_compile_patterns_rejects_invalid_regex(self):
        with pytest.raises(ConfigError):
            compile_patterns("api_file_patterns", ["(unclosed"])

    def test_compile_patterns_rejects_scalar(self):
        with pytest.raises(ConfigError):
            compile_patterns("api_file_patterns", "client")


class TestMessages:
    def test_get_message(self):
        assert format_message("get_user", Outcome.FLAG_GET) == (
            "Avoid using `get_` prefix for methods with arguments. "
            "Consider using `user_for` or `find_user` instead."
        )

    def test_set_message(self):
        assert format_message("set_limit", Outcome.FLAG_SET_NON_API) == (
            "Avoid using `set_` prefix for methods with arguments. "
            "Consider using the `limit=` setter instead."
        )

    def test_set_api_message(self):
        assert format_message("set_status", Outcome.FLAG_SET_API) == (
            "Avoid using `set_` prefix for methods with arguments in API clients. "
            "Consider using `create_status`, `put_status` or `update_status` instead."
        )

    def test_skip_has_no_message(self):
        assert format_message("fetch_user", Outcome.SKIP) == ""


class TestRule:
    def test_on_def_builds_violation(self):
        rule = MethodNameGetPrefixRule()
        violation = rule.on_def(first_def("def get_user(id)\n  User.find(id)\nend\n"))

        assert violation.rule_id == "method_name_get_prefix"
        assert violation.sub_type == SubType.GET_WITH_ARGUMENTS.id
        assert (violation.line, violation.column) == (1, 5)
        assert violation.related_lines == (1, 3)
        assert violation.severity is Severity.WARNING
        assert violation.correctable
        assert violation.message == format_message("get_user", Outcome.FLAG_GET)

    def test_on_def_returns_none_when_skipped(self):
        rule = MethodNameGetPrefixRule()
        assert rule.on_def(first_def("def get_config\nend\n")) is None

    def test_configured_severity(self):
        rule = MethodNameGetPrefixRule(RuleConfig(severity="error"))
        violation = rule.on_def(first_def("def get_user(id)\nend\n"))
        assert violation.severity is Severity.ERROR

    def test_autocorrect_can_be_disabled(self):
        rule = MethodNameGetPrefixRule(RuleConfig(params={"autocorrect": False}))
        violation = rule.on_def(first_def("def get_user(id)\nend\n"))
        assert not violation.correctable

    @pytest.mark.parametrize("source", [
        "def set_limit=(n)\n  @limit = n\nend\n",
        "def get_valid?(n)\n  n > 0\nend\n",
        "def get_reload!(id)\n  find(id)\nend\n",
    ])
    def test_suffixed_names_are_reported_without_correction(self, source):
        violation = MethodNameGetPrefixRule().on_def(first_def(source))
        assert violation is not None
        assert not violation.correctable

    def test_api_file_patterns_param(self):
        rule = MethodNameGetPrefixRule(RuleConfig(params={"api_file_patterns": ["gateway"]}))
        violation = rule.on_def(first_def("def set_status(id, s)\nend\n", "lib/gateway/orders.rb"))
        assert violation.sub_type == SubType.SET_WITH_ARGUMENTS_API.id

    def test_api_file_check_ignores_directories_above_project_root(self):
        source = "def set_status(id, s)\nend\n"
        file_path = "/home/dev/clients_app/app/models/order.rb"
        rule = MethodNameGetPrefixRule()

        assert rule.on_def(first_def(source, file_path)).sub_type == SubType.SET_WITH_ARGUMENTS_API.id

        rule.project_root = Path("/home/dev/clients_app")
        violation = rule.on_def(first_def(source, file_path))
        assert violation.sub_type == SubType.SET_WITH_ARGUMENTS.id
        assert violation.file_path == file_path
        assert rule.on_def(first_def(source, "/home/dev/clients_app/api/orders.rb")).sub_type == \
            SubType.SET_WITH_ARGUMENTS_API.id

    def test_invalid_param_raises_config_error(self):
        with pytest.raises(ConfigError):
            MethodNameGetPrefixRule(RuleConfig(params={"http_get_patterns": ["["]}))

    def test_check_reports_each_flagged_method(self):
        source = (
            "class UserRepository\n"
            "  def get_user(id)\n"
            "    User.find(id)\n"
            "  end\n"
            "\n"
            "  def get_all\n"
            "    User.all\n"
            "  end\n"
            "\n"
            "  def set_name(user, name)\n"
            "    user.name = name\n"
            "  end\n"
            "end\n"
        )
        rule = MethodNameGetPrefixRule()
        violations = rule.check("app/repositories/user_repository.rb", source, source.split("\n"), set())

        assert [(v.line, v.sub_type) for v in violations] == [
            (2, "get_with_arguments"),
            (10, "set_with_arguments"),
        ]
        assert violations[0].context == "  def get_user(id)\n    User.find(id)\n  end"

    def test_check_honours_changed_lines(self):
        source = "def get_a(x)\nend\n\ndef get_b(x)\nend\n"
        rule = MethodNameGetPrefixRule()
        violations = rule.check("a.rb", source, source.split("\n"), {4})
        assert [v.line for v in violations] == [4]


class TestCorrection:
    def correct(self, source: str, file_path: str = "app/models/user.rb") -> str:
        rule = MethodNameGetPrefixRule()
        violation = rule.on_def(first_def(source, file_path))
        corrector = Corrector(source)
        violation.correction(corrector)
        return corrector.process()

    def test_renames_get_method(self):
        source = "def get_user(id)\n  User.find(id)\nend\n"
        assert self.correct(source) == "def user_for(id)\n  User.find(id)\nend\n"

    def test_renames_set_method_to_setter(self):
        source = "def set_limit(n)\n  @limit = n\nend\n"
        assert self.correct(source) == "def limit=(n)\n  @limit = n\nend\n"

    def test_renames_api_set_method_to_first_suggestion(self):
        source = "def set_status(id, s)\n  put(id, s)\nend\n"
        assert self.correct(source, "app/api_clients/orders.rb") == "def create_status(id, s)\n  put(id, s)\nend\n"

    def test_only_identifier_changes(self):
        source = "  def self.get_user( id )  # get_user lookup\n    get_user_cache[id]\n  end\n"
        decl = first_def(source)
        corrected = self.correct(source)

        begin, end = decl.name_range.begin, decl.name_range.end
        assert corrected[:begin] == source[:begin]
        assert corrected[begin + len("user_for"):] == source[end:]

    @pytest.mark.parametrize("source, file_path", [
        ("def get_user(id)\nend\n", "app/models/user.rb"),
        ("def set_limit(n)\nend\n", "app/models/quota.rb"),
        ("def set_status(id, s)\nend\n", "app/api_clients/orders.rb"),
    ])
    def test_corrected_name_is_not_flagged_again(self, source, file_path):
        corrected = self.correct(source, file_path)
        assert classify(first_def(corrected, file_path)) is Outcome.SKIP

    @pytest.mark.parametrize("name, expected", [
        ("get_user", True),
        ("set_limit", True),
        ("set_limit=", False),
        ("get_valid?", False),
        ("set_reload!", False),
        ("get_2fa_code", False),
    ])
    def test_can_rename(self, name, expected):
        assert can_rename(name) is expected
