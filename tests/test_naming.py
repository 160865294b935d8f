"""
Tests for logical id generation.
"""

from serac.naming import Naming, normalize_name, normalize_name_to_alphanumeric


class TestNormalization:
    """Tests for name normalization."""

    def test_first_letter_upper_cased(self):
        """Test only the first character changes case."""
        assert normalize_name("helloWorld") == "HelloWorld"

    def test_dash_and_underscore_spelled_out(self):
        """Test separators are kept distinguishable."""
        assert normalize_name_to_alphanumeric("my-func") == "MyDashfunc"
        assert normalize_name_to_alphanumeric("my_func") == "MyUnderscorefunc"

    def test_other_characters_stripped(self):
        """Test characters that are invalid in logical ids are removed."""
        assert normalize_name_to_alphanumeric("api.v2") == "Apiv2"


class TestNaming:
    """Tests for resource logical ids."""

    def test_function_ids(self):
        """Test ids derived from a function name."""
        naming = Naming()

        assert naming.lambda_logical_id("api") == "ApiLambdaFunction"
        assert naming.log_group_logical_id("api") == "ApiLogGroup"
        assert naming.function_url_logical_id("api") == "ApiLambdaFunctionUrl"
        assert naming.function_url_permission_logical_id("api") == "ApiLambdaPermissionFnUrl"
        assert naming.event_invoke_config_logical_id("api") == "ApiLambdaEventConfig"
        assert naming.provisioned_concurrency_alias_logical_id("api") == "ApiProvConcLambdaAlias"
        assert naming.snap_start_alias_logical_id("api") == "ApiSnapStartLambdaAlias"
        assert naming.version_output_logical_id("api") == "ApiLambdaFunctionQualifiedArn"

    def test_version_id_strips_digest_symbols(self):
        """Test base64 symbols are dropped from the version id."""
        naming = Naming()

        logical_id = naming.version_logical_id("api", "ab+/c=")

        assert logical_id == "ApiLambdaFunctionVersionabc"

    def test_distinct_functions_get_distinct_ids(self):
        """Test names differing only by separator do not collide."""
        naming = Naming()

        assert naming.lambda_logical_id("a-b") != naming.lambda_logical_id("a_b")

    def test_layer_id(self):
        """Test layer ids."""
        assert Naming().layer_logical_id("deps") == "DepsLambdaLayer"
