#!/usr/bin/env python3
import os

from aws_cdk import App, Environment

from common_constructs.stack import StandardTags
from stacks.vector_search_stack import VectorSearchStack


class VectorSearchApp(App):
    """
    Vector search CDK application

    Deploys an OpenSearch Serverless vector collection and a vector index on it. The collection and index are
    described by the `vector_search` context block, see cdk.json.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        environment_name = self.node.get_context('environment_name')
        project = self.node.try_get_context('project') or 'vector-search'

        self.vector_search_stack = VectorSearchStack(
            self,
            'VectorSearchStack',
            env=Environment(
                account=os.environ.get('CDK_DEFAULT_ACCOUNT'),
                region=os.environ.get('CDK_DEFAULT_REGION'),
            ),
            standard_tags=StandardTags(project=project, service='search', environment=environment_name),
            environment_name=environment_name,
            vector_search_context=self.node.get_context('vector_search'),
        )


if __name__ == '__main__':
    app = VectorSearchApp()
    app.synth()
