from __future__ import annotations

import json
from enum import StrEnum

from aws_cdk import CfnTag
from aws_cdk.aws_iam import IRole, ManagedPolicy, PolicyStatement
from aws_cdk.aws_opensearchserverless import CfnAccessPolicy, CfnCollection, CfnSecurityPolicy
from constructs import Construct

from common_constructs.physical_name import generate_physical_name_v2

VECTOR_SEARCH_COLLECTION_TYPE = 'VECTORSEARCH'

# OpenSearch Serverless collection and policy names are limited to 32 lower-case characters
MAX_NAME_LENGTH = 32


class StandbyReplicas(StrEnum):
    ENABLED = 'ENABLED'
    DISABLED = 'DISABLED'


class VectorCollection(Construct):
    """
    OpenSearch Serverless collection configured for vector search.

    Along with the collection itself, this construct declares the encryption and network security policies the
    collection requires before it can be created, a managed policy granting API access to the collection, and a data
    access policy that principals are added to with ``grant_data_access``.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        collection_name: str | None = None,
        description: str | None = None,
        standby_replicas: StandbyReplicas = StandbyReplicas.ENABLED,
        tags: dict[str, str] | None = None,
    ):
        """
        :param scope: The scope of the construct
        :param construct_id: The id of the construct
        :param collection_name: Name of the collection. A unique name is generated if not provided.
        :param description: Optional description of the collection
        :param standby_replicas: Whether the collection uses standby replicas
        :param tags: Tags to apply to the collection. The collection resource does not pick up tags applied to its
            stack, so they are set on it explicitly.
        """
        super().__init__(scope, construct_id)

        self.collection_name = collection_name or generate_physical_name_v2(
            self, 'VectorStore', max_length=MAX_NAME_LENGTH, lower=True
        )
        self.collection_type = VECTOR_SEARCH_COLLECTION_TYPE
        self.standby_replicas = StandbyReplicas(standby_replicas)
        self._data_access_principals: list[str] = []

        self.encryption_policy = CfnSecurityPolicy(
            self,
            'EncryptionPolicy',
            name=generate_physical_name_v2(self, 'EncryptionPolicy', max_length=MAX_NAME_LENGTH, lower=True),
            type='encryption',
            policy=json.dumps(
                {
                    'Rules': [{'ResourceType': 'collection', 'Resource': [f'collection/{self.collection_name}']}],
                    'AWSOwnedKey': True,
                }
            ),
        )

        self.network_policy = CfnSecurityPolicy(
            self,
            'NetworkPolicy',
            name=generate_physical_name_v2(self, 'NetworkPolicy', max_length=MAX_NAME_LENGTH, lower=True),
            type='network',
            policy=json.dumps(
                [
                    {
                        'Rules': [
                            {'ResourceType': 'collection', 'Resource': [f'collection/{self.collection_name}']},
                            {'ResourceType': 'dashboard', 'Resource': [f'collection/{self.collection_name}']},
                        ],
                        'AllowFromPublic': True,
                    }
                ]
            ),
        )

        self.collection = CfnCollection(
            self,
            'VectorCollection',
            name=self.collection_name,
            type=self.collection_type,
            standby_replicas=self.standby_replicas.value,
            description=description,
            tags=[CfnTag(key=key, value=value) for key, value in (tags or {}).items()] or None,
        )
        self.collection.add_resource_dependency(self.encryption_policy)
        self.collection.add_resource_dependency(self.network_policy)

        self.collection_arn = self.collection.attr_arn
        self.collection_id = self.collection.attr_id

        self.aoss_policy = ManagedPolicy(
            self,
            'AOSSApiAccessAll',
            statements=[
                PolicyStatement(
                    actions=['aoss:APIAccessAll'],
                    resources=[self.collection_arn],
                ),
            ],
        )

        self.data_access_policy = CfnAccessPolicy(
            self,
            'DataAccessPolicy',
            name=generate_physical_name_v2(self, 'DataAccessPolicy', max_length=MAX_NAME_LENGTH, lower=True),
            type='data',
            policy=self._render_data_access_policy(),
        )

    @property
    def data_access_principals(self) -> list[str]:
        """Principal ARNs currently granted data access to the collection"""
        return list(self._data_access_principals)

    def grant_data_access(self, role: IRole):
        """
        Grant a role read and write access to the collection's indices and documents.

        :param role: The role to grant access to
        """
        self._data_access_principals.append(role.role_arn)
        self.data_access_policy.policy = self._render_data_access_policy()
        self.aoss_policy.attach_to_role(role)

    def _render_data_access_policy(self) -> str:
        return json.dumps(
            [
                {
                    'Rules': [
                        {
                            'Resource': [f'collection/{self.collection_name}'],
                            'Permission': [
                                'aoss:DescribeCollectionItems',
                                'aoss:CreateCollectionItems',
                                'aoss:UpdateCollectionItems',
                            ],
                            'ResourceType': 'collection',
                        },
                        {
                            'Resource': [f'index/{self.collection_name}/*'],
                            'Permission': [
                                'aoss:UpdateIndex',
                                'aoss:DescribeIndex',
                                'aoss:ReadDocument',
                                'aoss:WriteDocument',
                                'aoss:CreateIndex',
                                'aoss:DeleteIndex',
                            ],
                            'ResourceType': 'index',
                        },
                    ],
                    'Principal': self._data_access_principals,
                    'Description': '',
                }
            ]
        )
