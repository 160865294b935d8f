"""
Tests for function URLs.
"""

from serac.compilation import DEFAULT_CORS, compile_service, resolve_cors
from serac.config import CorsConfig


class TestResolveCors:
    """Tests for CORS overrides."""

    def test_disabled(self):
        """Test no CORS when not requested."""
        assert resolve_cors(None) is None
        assert resolve_cors(False) is None

    def test_true_gives_defaults(self):
        """Test cors: true yields the default policy."""
        assert resolve_cors(True) == DEFAULT_CORS

    def test_list_replaces_default(self):
        """Test an override list replaces, not extends, the default."""
        cors = resolve_cors(CorsConfig(allowed_origins=["https://x"]))

        assert cors["allowed_origins"] == ["https://x"]
        assert cors["allowed_methods"] == ["*"]

    def test_null_removes_field(self):
        """Test an explicit null drops the field entirely."""
        cors = resolve_cors(CorsConfig.model_validate({"allowedOrigins": None}))

        assert "allowed_origins" not in cors
        assert "allowed_headers" in cors

    def test_list_is_deduplicated(self):
        """Test duplicate entries collapse."""
        cors = resolve_cors(CorsConfig(allowed_methods=["GET", "POST", "GET"]))

        assert sorted(cors["allowed_methods"]) == ["GET", "POST"]

    def test_extra_fields(self):
        """Test credentials, exposed headers and max age."""
        cors = resolve_cors(CorsConfig(
            allow_credentials=True,
            exposed_response_headers=["X-Trace"],
            max_age=0,
        ))

        assert cors["allow_credentials"] is True
        assert cors["exposed_response_headers"] == ["X-Trace"]
        assert cors["max_age"] == 0

    def test_defaults_not_mutated(self):
        """Test resolving never changes the shared default."""
        resolve_cors(CorsConfig(allowed_origins=["https://x"]))

        assert DEFAULT_CORS["allowed_origins"] == ["*"]


class TestFunctionUrl:
    """Tests for compiled URL resources."""

    def test_public_url(self, make_service):
        """Test a URL without authorizer is public and gets an invoke permission."""
        graph, compiled = compile_service(make_service({"api": {"handler": "index.handler",
                                                                "url": True}}))

        url = graph.get("ApiLambdaFunctionUrl")
        assert compiled[0].url_logical_id == "ApiLambdaFunctionUrl"
        assert url.properties == {
            "AuthType": "NONE",
            "TargetFunctionArn": {"Fn::GetAtt": ["ApiLambdaFunction", "Arn"]},
        }
        permission = graph.get("ApiLambdaPermissionFnUrl")
        assert permission.properties == {
            "FunctionName": {"Fn::GetAtt": ["ApiLambdaFunction", "Arn"]},
            "Action": "lambda:InvokeFunctionUrl",
            "Principal": "*",
            "FunctionUrlAuthType": "NONE",
        }
        assert graph.outputs["ApiLambdaFunctionUrl"] == {
            "Description": "Lambda Function URL",
            "Value": {"Fn::GetAtt": ["ApiLambdaFunctionUrl", "FunctionUrl"]},
        }

    def test_iam_url_has_no_public_permission(self, make_service):
        """Test an IAM-authorized URL is not opened to everyone."""
        graph, _ = compile_service(make_service({"api": {"handler": "index.handler",
                                                         "url": {"authorizer": "aws_iam"}}}))

        assert graph.get("ApiLambdaFunctionUrl").properties["AuthType"] == "AWS_IAM"
        assert "ApiLambdaPermissionFnUrl" not in graph

    def test_streaming_mode(self, make_service):
        """Test only response streaming is emitted as an invoke mode."""
        service = make_service({
            "stream": {"handler": "index.handler", "url": {"invokeMode": "RESPONSE_STREAM"}},
            "buffer": {"handler": "index.handler", "url": {"invokeMode": "BUFFERED"}},
        })

        graph, _ = compile_service(service)

        assert graph.get("StreamLambdaFunctionUrl").properties["InvokeMode"] == "RESPONSE_STREAM"
        assert "InvokeMode" not in graph.get("BufferLambdaFunctionUrl").properties

    def test_cors_properties(self, make_service):
        """Test CORS overrides land in the URL resource."""
        service = make_service({"api": {"handler": "index.handler", "url": {"cors": {
            "allowedOrigins": ["https://x"],
            "allowedHeaders": None,
            "maxAge": 300,
        }}}})

        graph, _ = compile_service(service)

        assert graph.get("ApiLambdaFunctionUrl").properties["Cors"] == {
            "AllowMethods": ["*"],
            "AllowOrigins": ["https://x"],
            "MaxAge": 300,
        }

    def test_url_targets_alias(self, make_service):
        """Test a URL goes through the provisioned concurrency alias."""
        service = make_service({"api": {"handler": "index.handler", "url": True,
                                        "provisionedConcurrency": 1}})

        graph, _ = compile_service(service)

        url = graph.get("ApiLambdaFunctionUrl")
        assert url.properties["TargetFunctionArn"] == {
            "Fn::Join": [":", [{"Fn::GetAtt": ["ApiLambdaFunction", "Arn"]}, "provisioned"]],
        }
        assert url.depends_on == ["ApiProvConcLambdaAlias"]
        assert graph.get("ApiLambdaPermissionFnUrl").depends_on == ["ApiProvConcLambdaAlias"]
