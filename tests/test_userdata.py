import base64

from nodegroups.components.userdata import (
    bootstrap_extra_args,
    encode_user_data,
    kubelet_extra_args,
    render_user_data,
)
from nodegroups.models import Taint, TaintEffect


def test_kubelet_args_from_labels_and_taints():
    args = kubelet_extra_args(
        "--max-pods=30",
        labels={"role": "worker", "tier": "batch"},
        taints={"dedicated": Taint(value="gpu", effect=TaintEffect.NO_SCHEDULE)},
    )

    assert args == [
        "--max-pods=30",
        "--node-labels=role=worker,tier=batch",
        "--register-with-taints=dedicated=gpu:NoSchedule",
    ]


def test_kubelet_args_empty():
    assert kubelet_extra_args(None) == []
    assert kubelet_extra_args("", labels={}, taints={}) == []


def test_single_kubelet_arg_is_not_quoted():
    result = bootstrap_extra_args(None, ["--node-labels=a=b"])

    assert result == " --kubelet-extra-args --node-labels=a=b"


def test_multiple_kubelet_args_are_quoted():
    result = bootstrap_extra_args(None, ["--max-pods=30", "--node-labels=a=b"])

    assert result == " --kubelet-extra-args '--max-pods=30 --node-labels=a=b'"


def test_bootstrap_args_precede_kubelet_args():
    result = bootstrap_extra_args("--use-max-pods false", ["--max-pods=30"])

    assert result == " --use-max-pods false --kubelet-extra-args --max-pods=30"


def test_no_extra_args():
    assert bootstrap_extra_args(None, []) == ""


def test_render_with_signal():
    script = render_user_data(
        cluster_name="demo",
        endpoint="https://example.eks.amazonaws.com",
        certificate_authority_data="Q0E=",
        extra_args="",
        custom_user_data=None,
        heredoc_marker="ng-1a2b3c4d",
        signal_stack_name="ng-1a2b3c4d",
        region="us-west-2",
    )

    assert script.startswith("#!/bin/bash\n\n")
    assert (
        '/etc/eks/bootstrap.sh --apiserver-endpoint "https://example.eks.amazonaws.com" '
        '--b64-cluster-ca "Q0E=" "demo"\n'
    ) in script
    assert script.endswith(
        "/opt/aws/bin/cfn-signal --exit-code $? --stack ng-1a2b3c4d "
        "--resource NodeGroup --region us-west-2\n"
    )
    assert "/opt/user-data" not in script


def test_render_custom_user_data_without_signal():
    script = render_user_data(
        cluster_name="demo",
        endpoint="https://example.eks.amazonaws.com",
        certificate_authority_data="Q0E=",
        extra_args=" --kubelet-extra-args --max-pods=30",
        custom_user_data="#!/bin/bash\necho hello",
        heredoc_marker="workers",
    )

    assert '"demo" --kubelet-extra-args --max-pods=30\n' in script
    assert (
        "cat >/opt/user-data <<workers-user-data\n"
        "#!/bin/bash\necho hello\n"
        "workers-user-data\n"
        "chmod +x /opt/user-data\n"
        "/opt/user-data\n"
    ) in script
    assert "cfn-signal" not in script


def test_encode_user_data():
    encoded = encode_user_data("#!/bin/bash\necho hi\n")

    assert base64.b64decode(encoded).decode("utf-8") == "#!/bin/bash\necho hi\n"
