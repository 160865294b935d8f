"""CloudFormation intrinsic function helpers."""

from typing import Any


def ref(logical_id: str) -> dict[str, Any]:
    return {"Ref": logical_id}


def get_att(logical_id: str, attribute: str) -> dict[str, Any]:
    return {"Fn::GetAtt": [logical_id, attribute]}


def sub(template: str) -> dict[str, Any]:
    return {"Fn::Sub": template}


def join(delimiter: str, parts: list[Any]) -> dict[str, Any]:
    return {"Fn::Join": [delimiter, parts]}


def function_arn(deployed_name: str) -> dict[str, Any]:
    """
    ARN of a function in this account and region, built from its name.

    Used instead of ``Fn::GetAtt`` wherever the reference ends up in the
    shared execution policy, which every function depends on.
    """
    return sub(
        "arn:${AWS::Partition}:lambda:${AWS::Region}:${AWS::AccountId}:function:"
        + deployed_name
    )
