"""
Tests for the shared execution policy.
"""

from serac.template import ExecutionPolicy, Resource, ResourceGraph, StatementList


class TestStatementList:
    """Tests for deep-equality statement insertion."""

    def test_appends_new_statement(self):
        """Test a new statement is appended."""
        statements = StatementList()

        assert statements.add({"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": ["*"]})
        assert len(statements) == 1

    def test_deep_equal_statement_collapses(self):
        """Test a structurally equal statement is not appended twice."""
        statements = StatementList()
        statement = {"Effect": "Allow", "Action": ["sns:Publish"], "Resource": [{"Ref": "Topic"}]}

        statements.add(statement)
        added = statements.add({"Effect": "Allow", "Action": ["sns:Publish"],
                                "Resource": [{"Ref": "Topic"}]})

        assert added is False
        assert len(statements) == 1

    def test_same_action_different_resource_kept(self):
        """Test dedup is by whole statement, not by action."""
        statements = StatementList()

        statements.add({"Effect": "Allow", "Action": ["sns:Publish"], "Resource": ["a"]})
        statements.add({"Effect": "Allow", "Action": ["sns:Publish"], "Resource": ["b"]})

        assert len(statements) == 2

    def test_wraps_list_in_place(self):
        """Test insertions are visible in the wrapped list."""
        backing = []
        statements = StatementList(backing)

        statements.add({"Effect": "Allow", "Action": "x", "Resource": "*"})

        assert backing == [{"Effect": "Allow", "Action": "x", "Resource": "*"}]

    def test_stored_statement_is_a_copy(self):
        """Test later changes to the caller's dict do not leak in."""
        statements = StatementList()
        statement = {"Effect": "Allow", "Action": ["x"], "Resource": ["*"]}

        statements.add(statement)
        statement["Action"].append("y")

        assert list(statements)[0]["Action"] == ["x"]


class TestExecutionPolicy:
    """Tests for binding to the default role."""

    def _graph_with_role(self):
        graph = ResourceGraph()
        graph.add("IamRoleLambdaExecution", Resource(
            type="AWS::IAM::Role",
            properties={"Policies": [{"PolicyName": "p", "PolicyDocument": {"Statement": []}}]},
        ))
        return graph

    def test_from_graph_without_role(self):
        """Test there is no policy when the graph has no default role."""
        assert ExecutionPolicy.from_graph(ResourceGraph()) is None

    def test_allow_writes_into_role(self):
        """Test statements land in the role's policy document."""
        graph = self._graph_with_role()
        policy = ExecutionPolicy.from_graph(graph)

        policy.allow(["kms:Decrypt"], ["arn:aws:kms:us-east-1:000000000000:key/k"])

        document = graph.get("IamRoleLambdaExecution").properties["Policies"][0]["PolicyDocument"]
        assert document["Statement"] == [{
            "Effect": "Allow",
            "Action": ["kms:Decrypt"],
            "Resource": ["arn:aws:kms:us-east-1:000000000000:key/k"],
        }]

    def test_allow_with_sid(self):
        """Test a Sid is part of the statement."""
        policy = ExecutionPolicy([])

        policy.allow("sqs:SendMessage", "arn:aws:sqs:us-east-1:000000000000:q", sid="ApiDestination1")

        assert list(policy.statements)[0]["Sid"] == "ApiDestination1"

    def test_allow_twice_is_idempotent(self):
        """Test granting the same thing twice yields one statement."""
        policy = ExecutionPolicy([])

        assert policy.allow(["xray:PutTraceSegments"], ["*"]) is True
        assert policy.allow(["xray:PutTraceSegments"], ["*"]) is False
        assert len(policy) == 1
