import json
from typing import Dict, Optional

import pulumi
import pulumi_aws as aws

LAMBDA_ASSUME_ROLE_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Action": "sts:AssumeRole",
            "Effect": "Allow",
            "Principal": {"Service": "lambda.amazonaws.com"},
        }
    ],
}


class DockerLambdaFunction(pulumi.ComponentResource):
    """
    One API handler deployed from the shared container image.

    Creates the function with its own log group and execution role. Inline
    policies are passed by label, e.g. ``{"dynamodb": policy_json}``.
    """

    def __init__(
        self,
        name: str,
        handler: str,
        shared_image_uri: pulumi.Input[str],
        environment_vars: Optional[Dict[str, pulumi.Input[str]]] = None,
        additional_policies: Optional[Dict[str, pulumi.Input[str]]] = None,
        timeout: int = 30,
        memory_size: int = 256,
        log_retention_days: int = 14,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("rental:aws:DockerLambdaFunction", name, None, opts)
        child_opts = pulumi.ResourceOptions(parent=self)

        # Named up front so the function's logs land in a group with retention
        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-log-group",
            name=f"/aws/lambda/{name}",
            retention_in_days=log_retention_days,
            opts=child_opts,
        )

        self.role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=json.dumps(LAMBDA_ASSUME_ROLE_POLICY),
            opts=child_opts,
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-basic-policy",
            role=self.role.name,
            policy_arn="arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole",
            opts=child_opts,
        )

        self.policies = {
            label: aws.iam.RolePolicy(
                f"{name}-{label}-policy",
                role=self.role.id,
                policy=policy_doc,
                opts=child_opts,
            )
            for label, policy_doc in (additional_policies or {}).items()
        }

        self.function = aws.lambda_.Function(
            f"{name}-function",
            name=name,
            package_type="Image",
            image_uri=shared_image_uri,
            role=self.role.arn,
            timeout=timeout,
            memory_size=memory_size,
            environment={"variables": environment_vars or {}},
            image_config={"commands": [handler]},
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[self.log_group, *self.policies.values()],
            ),
        )

        self.arn = self.function.arn
        self.name = self.function.name
        self.invoke_arn = self.function.invoke_arn

        self.register_outputs(
            {
                "arn": self.arn,
                "name": self.name,
                "invoke_arn": self.invoke_arn,
                "role_arn": self.role.arn,
                "handler": handler,
            }
        )
