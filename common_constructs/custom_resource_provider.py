from __future__ import annotations

import os

from aws_cdk import Duration, Stack
from aws_cdk.aws_iam import Role, ServicePrincipal
from aws_cdk.aws_lambda import Code, Function, Runtime
from aws_cdk.aws_logs import LogGroup, RetentionDays
from aws_cdk.custom_resources import Provider
from cdk_nag import NagSuppressions
from constructs import Construct


def build_custom_resource_provider(
    *,
    provider_name: str,
    code_path: str,
    handler: str,
    runtime: Runtime,
    code_path_context_key: str | None = None,
) -> type[Construct]:
    """
    Build a custom resource provider class that is shared by every resource of its type in a stack.

    The returned class should not be instantiated directly. Call ``get_provider(scope)``, which creates the
    provider as a direct child of the enclosing stack the first time and returns that same instance afterwards.

    :param provider_name: Construct id of the provider within its stack
    :param code_path: Directory holding the handler code, relative to the CDK app working directory
    :param handler: Lambda handler entry point
    :param runtime: Lambda runtime of the handler
    :param code_path_context_key: Optional CDK context key that overrides ``code_path``
    """

    class CustomResourceProvider(Construct):
        """
        Custom resource provider backed by a single Lambda function.
        """

        @classmethod
        def get_provider(cls, scope: Construct) -> CustomResourceProvider:
            """
            Return the stack-wide provider, creating it on first use.

            :param scope: Any construct within the target stack
            """
            stack = Stack.of(scope)
            existing = stack.node.try_find_child(provider_name)
            if existing is not None:
                return existing
            return cls(stack, provider_name)

        def __init__(self, scope: Construct, construct_id: str):
            super().__init__(scope, construct_id)
            stack = Stack.of(self)

            resolved_code_path = code_path
            if code_path_context_key is not None:
                resolved_code_path = self.node.try_get_context(code_path_context_key) or code_path
            if not os.path.isdir(resolved_code_path):
                raise ValueError(
                    f'{provider_name} handler code not found at {resolved_code_path}. '
                    + (
                        f"Set the '{code_path_context_key}' context value to the handler's directory."
                        if code_path_context_key is not None
                        else ''
                    )
                )

            log_group = LogGroup(
                self,
                'LogGroup',
                retention=RetentionDays.ONE_MONTH,
            )
            NagSuppressions.add_resource_suppressions(
                log_group,
                suppressions=[
                    {
                        'id': 'HIPAA.Security-CloudWatchLogGroupEncrypted',
                        'reason': 'We do not log sensitive data to CloudWatch, and operational visibility of system'
                        ' logs to operators with credentials for the AWS account is desired. Encryption is not'
                        ' appropriate here.',
                    },
                ],
            )

            self.role = Role(
                self,
                'CRRole',
                assumed_by=ServicePrincipal('lambda.amazonaws.com'),
            )
            log_group.grant_write(self.role)
            NagSuppressions.add_resource_suppressions(
                self.role,
                suppressions=[
                    {
                        'id': 'AwsSolutions-IAM5',
                        'reason': 'Writing to the function log group requires access to all log streams within it.',
                    },
                ],
                apply_to_children=True,
            )

            self.function = Function(
                self,
                'CustomResourcesFunction',
                code=Code.from_asset(resolved_code_path),
                handler=handler,
                runtime=runtime,
                role=self.role,
                log_group=log_group,
                timeout=Duration.minutes(15),
                memory_size=128,
            )
            NagSuppressions.add_resource_suppressions(
                self.function,
                suppressions=[
                    {
                        'id': 'AwsSolutions-L1',
                        'reason': 'The runtime is pinned to match the externally supplied handler code asset',
                    },
                    {
                        'id': 'HIPAA.Security-LambdaDLQ',
                        'reason': 'This function is only invoked synchronously by CloudFormation at deploy time. It'
                        ' does not need a DLQ',
                    },
                    {
                        'id': 'HIPAA.Security-LambdaInsideVPC',
                        'reason': 'This function only calls public AWS service endpoints',
                    },
                ],
            )

            provider_log_group = LogGroup(
                self,
                'ProviderLogGroup',
                retention=RetentionDays.ONE_DAY,
            )
            NagSuppressions.add_resource_suppressions(
                provider_log_group,
                suppressions=[
                    {
                        'id': 'HIPAA.Security-CloudWatchLogGroupEncrypted',
                        'reason': 'We do not log sensitive data to CloudWatch, and operational visibility of system'
                        ' logs to operators with credentials for the AWS account is desired. Encryption is not'
                        ' appropriate here.',
                    },
                ],
            )

            self.provider = Provider(
                self,
                'Provider',
                on_event_handler=self.function,
                log_group=provider_log_group,
            )
            self.service_token = self.provider.service_token

            NagSuppressions.add_resource_suppressions_by_path(
                stack,
                f'{self.provider.node.path}/framework-onEvent/Resource',
                [
                    {'id': 'AwsSolutions-L1', 'reason': 'We do not control this runtime'},
                    {
                        'id': 'HIPAA.Security-LambdaConcurrency',
                        'reason': 'This function is only run at deploy time, by CloudFormation and has no need for '
                        'concurrency limits.',
                    },
                    {
                        'id': 'HIPAA.Security-LambdaDLQ',
                        'reason': 'This is a synchronous function that runs at deploy time. It does not need a DLQ',
                    },
                    {
                        'id': 'HIPAA.Security-LambdaInsideVPC',
                        'reason': 'Provider framework lambda is managed by AWS and does not function inside a VPC',
                    },
                ],
            )
            NagSuppressions.add_resource_suppressions_by_path(
                stack,
                f'{self.provider.node.path}/framework-onEvent/ServiceRole/Resource',
                [
                    {
                        'id': 'AwsSolutions-IAM4',
                        'reason': 'The Provider framework requires AWS managed policies (AWSLambdaBasicExecutionRole) '
                        'for its service role. We do not control these policies.',
                    },
                ],
            )
            NagSuppressions.add_resource_suppressions_by_path(
                stack,
                f'{self.provider.node.path}/framework-onEvent/ServiceRole/DefaultPolicy/Resource',
                [
                    {
                        'id': 'AwsSolutions-IAM5',
                        'reason': 'The Provider framework requires wildcard permissions to invoke the Lambda function. '
                        'This is a standard pattern for custom resource providers and is necessary for the '
                        'framework to manage the custom resource lifecycle.',
                    },
                ],
            )

    return CustomResourceProvider
