"""
Core template: the resources every service starts from.

The function compiler expects the graph to already hold the deployment
bucket, the default execution role, one log group per function and the
service's own layers. This module builds that starting point.
"""

from serac.config.provider import ProviderConfig
from serac.config.service import ServiceConfig
from serac.naming import DEFAULT_EXECUTION_ROLE, DEPLOYMENT_BUCKET, Naming
from serac.template.graph import RETAIN, Resource, ResourceGraph
from serac.template.intrinsics import ref, sub


VPC_ACCESS_POLICY = (
    "arn:${AWS::Partition}:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole"
)


def deployment_bucket(provider: ProviderConfig) -> str | dict:
    """Bucket holding the code artifacts, as a name or a reference."""
    if provider.deployment_bucket:
        return provider.deployment_bucket
    return ref(DEPLOYMENT_BUCKET)


def _uses_default_role(service: ServiceConfig) -> bool:
    from serac.compilation.roles import resolve_role

    return any(
        resolve_role(f.role or service.provider.role).is_default
        for f in service.functions.values()
    )


def _execution_role(service: ServiceConfig) -> Resource:
    prefix = f"{service.service}-{service.provider.stage}"
    log_group_arn = (
        "arn:${AWS::Partition}:logs:${AWS::Region}:${AWS::AccountId}:log-group:/aws/lambda/"
        + prefix
    )
    role = Resource(
        type="AWS::IAM::Role",
        properties={
            "AssumeRolePolicyDocument": {
                "Version": "2012-10-17",
                "Statement": [{
                    "Effect": "Allow",
                    "Principal": {"Service": ["lambda.amazonaws.com"]},
                    "Action": ["sts:AssumeRole"],
                }],
            },
            "Policies": [{
                "PolicyName": {"Fn::Join": ["-", [prefix, "lambda"]]},
                "PolicyDocument": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": [
                                "logs:CreateLogStream",
                                "logs:CreateLogGroup",
                                "logs:TagResource",
                            ],
                            "Resource": [sub(f"{log_group_arn}*:*")],
                        },
                        {
                            "Effect": "Allow",
                            "Action": ["logs:PutLogEvents"],
                            "Resource": [sub(f"{log_group_arn}*:*:*")],
                        },
                    ],
                },
            }],
            "Path": "/",
            "RoleName": {"Fn::Join": ["-", [prefix, {"Ref": "AWS::Region"}, "lambdaRole"]]},
        },
    )

    vpc_in_use = service.provider.vpc is not None or any(
        f.vpc not in (None, False) for f in service.functions.values()
    )
    if vpc_in_use:
        role.properties["ManagedPolicyArns"] = [sub(VPC_ACCESS_POLICY)]
    return role


def build_core_graph(service: ServiceConfig, naming: Naming | None = None) -> ResourceGraph:
    """
    Build the graph the function compiler starts from.

    Args:
        service: Service definition
        naming: Logical id generator

    Returns:
        ResourceGraph with bucket, role, log groups, layers and the
        service's own resources
    """
    naming = naming or Naming()
    graph = ResourceGraph()

    if not service.provider.deployment_bucket:
        graph.add(DEPLOYMENT_BUCKET, Resource(
            type="AWS::S3::Bucket",
            properties={
                "BucketEncryption": {
                    "ServerSideEncryptionConfiguration": [{
                        "ServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"},
                    }],
                },
            },
        ))
        graph.add_output("ServerlessDeploymentBucketName", ref(DEPLOYMENT_BUCKET),
                         "Deployment bucket name")

    if _uses_default_role(service):
        graph.add(DEFAULT_EXECUTION_ROLE, _execution_role(service))

    for name, function in service.functions.items():
        if function.disable_logs:
            continue
        properties = {"LogGroupName": f"/aws/lambda/{service.deployed_function_name(name)}"}
        if service.provider.log_retention_in_days:
            properties["RetentionInDays"] = service.provider.log_retention_in_days
        graph.add(naming.log_group_logical_id(name), Resource(
            type="AWS::Logs::LogGroup",
            properties=properties,
            source_name=name,
        ))

    for name, layer in service.layers.items():
        properties = {
            "Content": {
                "S3Bucket": deployment_bucket(service.provider),
                "S3Key": service.artifact_s3_key(service.layer_artifact_path(name)),
            },
            "LayerName": layer.name or name,
        }
        if layer.description:
            properties["Description"] = layer.description
        if layer.compatible_runtimes:
            properties["CompatibleRuntimes"] = layer.compatible_runtimes
        if layer.compatible_architectures:
            properties["CompatibleArchitectures"] = layer.compatible_architectures
        if layer.license_info:
            properties["LicenseInfo"] = layer.license_info
        graph.add(naming.layer_logical_id(name), Resource(
            type="AWS::Lambda::LayerVersion",
            properties=properties,
            deletion_policy=RETAIN if layer.retain else None,
            source_name=name,
        ))

    for logical_id, data in (service.resources.get("Resources") or {}).items():
        graph.add(logical_id, Resource.from_dict(data))
    for logical_id, output in (service.resources.get("Outputs") or {}).items():
        graph.outputs[logical_id] = output

    return graph
