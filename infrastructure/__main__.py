import importlib.util
import json
import os
import subprocess
import sys
from datetime import datetime

import pulumi
import pulumi_aws as aws
from components.lambda_function import DockerLambdaFunction

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
PARAMETER_PREFIX = "/rental-listings"

# The route table lives with the handlers. Load the module on its own so the
# handler packages (and their AWS clients) are not imported at deploy time.
sys.path.insert(0, PROJECT_ROOT)
_routes_spec = importlib.util.spec_from_file_location(
    "route_table", os.path.join(PROJECT_ROOT, "handlers", "routes.py")
)
route_table = importlib.util.module_from_spec(_routes_spec)
_routes_spec.loader.exec_module(route_table)

# Get current AWS account ID and region
current = aws.get_caller_identity()
current_region = aws.get_region()

# Shared ECR Repository for all Lambda functions
ecr_repository = aws.ecr.Repository(
    "rental-listings-repo", name="rental-listings-backend", force_delete=True
)


def get_content_hash():
    """Get content-based hash using the standalone script."""
    try:
        result = subprocess.run(
            [sys.executable, "get_image_tag.py"],
            capture_output=True,
            text=True,
            cwd=os.path.dirname(__file__),
        )
        if result.returncode == 0:
            return result.stdout.strip()
        return datetime.now().strftime("%Y%m%d-%H%M%S")
    except OSError:
        # Fallback to timestamp if script fails
        return datetime.now().strftime("%Y%m%d-%H%M%S")


# Use content-based image tag to force updates when code changes
# Read the tag from a file if it exists (set by Makefile), otherwise generate it
tag_file = "image_tag.txt"
if os.path.exists(tag_file):
    with open(tag_file, "r") as f:
        image_tag = f.read().strip()
else:
    image_tag = get_content_hash()

image_uri = ecr_repository.repository_url.apply(lambda url: f"{url}:{image_tag}")

# Key-value table: one item per key, the JSON value under "value"
dynamodb_table = aws.dynamodb.Table(
    "rental-listings-table",
    name="RentalListingsTable",
    billing_mode="PAY_PER_REQUEST",
    attributes=[{"name": "PK", "type": "S"}],
    hash_key="PK",
)


def allow(actions, resources):
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [{"Effect": "Allow", "Action": actions, "Resource": resources}],
        }
    )


# Key-value access only: no scans or queries
KV_ACTIONS = [
    "dynamodb:GetItem",
    "dynamodb:BatchGetItem",
    "dynamodb:PutItem",
    "dynamodb:UpdateItem",
    "dynamodb:DeleteItem",
    "dynamodb:ConditionCheckItem",
]
PARAMETER_ACTIONS = [
    "ssm:GetParametersByPath",
    "ssm:GetParameters",
    "ssm:GetParameter",
]

dynamodb_policy = dynamodb_table.arn.apply(lambda arn: allow(KV_ACTIONS, [arn]))

# Supabase settings are uploaded by scripts/upload_env_to_parameter_store.py
parameters_policy = pulumi.Output.concat(
    "arn:aws:ssm:",
    current_region.name,
    ":",
    current.account_id,
    ":parameter",
    PARAMETER_PREFIX,
).apply(lambda arn: allow(PARAMETER_ACTIONS, [arn, f"{arn}/*"]))

# Environment variables for Lambda functions
lambda_env_vars = {
    "TABLE_NAME": dynamodb_table.name,
}

# Image uploads arrive base64 encoded in the event
function_overrides = {
    "upload-image": {"memory_size": 512, "timeout": 60},
}

# Create one Lambda function per route
functions = {}
for route_config in route_table.ROUTES:
    functions[route_config.function] = DockerLambdaFunction(
        f"rental-listings-{route_config.function}",
        handler=route_config.handler,
        shared_image_uri=image_uri,
        environment_vars=lambda_env_vars,
        additional_policies={"dynamodb": dynamodb_policy, "parameters": parameters_policy},
        **function_overrides.get(route_config.function, {}),
    )

# The authorizer only validates tokens, so it needs no table access
authorizer_function = DockerLambdaFunction(
    "rental-listings-authorizer",
    handler="authorizer.lambda_handler",
    shared_image_uri=image_uri,
    environment_vars=lambda_env_vars,
    additional_policies={"parameters": parameters_policy},
)

# API Gateway HTTP API
api = aws.apigatewayv2.Api(
    "rental-listings-api",
    protocol_type="HTTP",
    cors_configuration={
        "allow_origins": ["*"],
        "allow_headers": ["Content-Type", "Authorization"],
        "allow_methods": ["GET", "POST", "PUT", "OPTIONS"],
    },
)

# Lambda Authorizer for HTTP API Gateway
authorizer = aws.apigatewayv2.Authorizer(
    "lambda-authorizer",
    api_id=api.id,
    authorizer_type="REQUEST",
    authorizer_uri=authorizer_function.invoke_arn,
    authorizer_payload_format_version="2.0",
    identity_sources=["$request.header.Authorization"],
    name="lambda-authorizer",
    # No caching: a signed-out token must stop working on the next request
    authorizer_result_ttl_in_seconds=0,
    enable_simple_responses=True,  # {"isAuthorized": true/false, "context": {...}}
)

# Permission for API Gateway to invoke the authorizer
authorizer_permission = aws.lambda_.Permission(
    "authorizer-permission",
    action="lambda:InvokeFunction",
    function=authorizer_function.name,
    principal="apigateway.amazonaws.com",
    source_arn=pulumi.Output.concat(api.execution_arn, "/authorizers/", authorizer.id),
)

api_log_group = aws.cloudwatch.LogGroup(
    "rental-listings-api-log-group",
    name="/aws/apigateway/rental-listings-api",
    retention_in_days=14,
)

# API Gateway Stage with logging
stage = aws.apigatewayv2.Stage(
    "rental-listings-stage",
    api_id=api.id,
    name="dev",
    auto_deploy=True,
    access_log_settings={
        "destination_arn": api_log_group.arn,
        "format": "$context.requestId $context.routeKey $context.status $context.error.message $context.authorizer.error $context.integrationErrorMessage",
    },
)

# Create integrations, permissions, and routes
for route_config in route_table.ROUTES:
    function_name = route_config.function
    resource_name = function_name.replace("-", "_")

    permission = aws.lambda_.Permission(
        f"{resource_name}-permission",
        action="lambda:InvokeFunction",
        function=functions[function_name].name,
        principal="apigateway.amazonaws.com",
        source_arn=pulumi.Output.concat(
            api.execution_arn,
            "/",
            stage.name,
            "/",
            route_config.method,
            route_config.path,
        ),
    )

    integration = aws.apigatewayv2.Integration(
        f"{resource_name}-integration",
        api_id=api.id,
        integration_type="AWS_PROXY",
        integration_uri=functions[function_name].invoke_arn,
        integration_method="POST",
        payload_format_version="2.0",
    )

    route_args = {
        "api_id": api.id,
        "route_key": route_config.route_key,
        "target": pulumi.Output.concat("integrations/", integration.id),
    }

    # Add authorizer for protected routes
    if route_config.protected:
        route_args["authorization_type"] = "CUSTOM"
        route_args["authorizer_id"] = authorizer.id

    aws.apigatewayv2.Route(f"{resource_name}-route", **route_args)

# Exports
pulumi.export("ecr_repository_url", ecr_repository.repository_url)
pulumi.export("image_tag", image_tag)
pulumi.export("image_uri", image_uri)
pulumi.export(
    "api_url",
    pulumi.Output.concat(
        "https://",
        api.id,
        ".execute-api.",
        current_region.name,
        ".amazonaws.com/",
        stage.name,
    ),
)
pulumi.export("api_id", api.id)
pulumi.export("authorizer_id", authorizer.id)
pulumi.export("dynamodb_table_name", dynamodb_table.name)
pulumi.export("dynamodb_table_arn", dynamodb_table.arn)
pulumi.export("parameter_prefix", PARAMETER_PREFIX)
