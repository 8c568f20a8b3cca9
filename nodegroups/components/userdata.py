"""User data that joins a self-managed worker to its cluster."""

import base64
from typing import Mapping, Optional

import pulumi

from nodegroups.models import Taint

BOOTSTRAP_SCRIPT = "/etc/eks/bootstrap.sh"
CFN_SIGNAL = "/opt/aws/bin/cfn-signal"


def kubelet_extra_args(
    extra_args: Optional[str],
    labels: Optional[Mapping[str, str]] = None,
    taints: Optional[Mapping[str, Taint]] = None,
) -> list[str]:
    """Explicit kubelet args followed by the label and taint flags."""
    args = extra_args.split() if extra_args else []

    if labels:
        args.append("--node-labels=" + ",".join(f"{k}={v}" for k, v in labels.items()))

    if taints:
        args.append(
            "--register-with-taints="
            + ",".join(f"{k}={t.value}:{t.effect.value}" for k, t in taints.items())
        )

    return args


def bootstrap_extra_args(extra_args: Optional[str], kubelet_args: list[str]) -> str:
    """Everything appended after the cluster name on the bootstrap.sh command line."""
    result = f" {extra_args}" if extra_args else ""
    if len(kubelet_args) == 1:
        # A single argument is passed unquoted, as earlier releases did.
        result += f" --kubelet-extra-args {kubelet_args[0]}"
    elif len(kubelet_args) > 1:
        result += f" --kubelet-extra-args '{' '.join(kubelet_args)}'"
    return result


def render_user_data(
    cluster_name: str,
    endpoint: str,
    certificate_authority_data: str,
    extra_args: str,
    custom_user_data: Optional[str],
    heredoc_marker: str,
    signal_stack_name: Optional[str] = None,
    region: Optional[str] = None,
) -> str:
    """Render the bootstrap script.

    Custom user data is staged to /opt/user-data and run after the EKS
    bootstrap. When signal_stack_name is given the script ends by signalling
    the result to that CloudFormation stack.
    """
    custom = ""
    if custom_user_data:
        custom = (
            f"cat >/opt/user-data <<{heredoc_marker}-user-data\n"
            f"{custom_user_data}\n"
            f"{heredoc_marker}-user-data\n"
            "chmod +x /opt/user-data\n"
            "/opt/user-data\n"
        )

    script = (
        "#!/bin/bash\n"
        "\n"
        f'{BOOTSTRAP_SCRIPT} --apiserver-endpoint "{endpoint}" '
        f'--b64-cluster-ca "{certificate_authority_data}" "{cluster_name}"{extra_args}\n'
        f"{custom}\n"
    )
    if signal_stack_name is not None:
        script += (
            f"{CFN_SIGNAL} --exit-code $? --stack {signal_stack_name} "
            f"--resource NodeGroup --region {region}\n"
        )
    return script


def encode_user_data(script: str) -> str:
    """Launch templates require base64 encoded user data."""
    return base64.b64encode(script.encode("utf-8")).decode("ascii")


def build_user_data(
    cluster_name: pulumi.Input[str],
    endpoint: pulumi.Input[str],
    certificate_authority_data: pulumi.Input[str],
    extra_args: str,
    custom_user_data: Optional[pulumi.Input[str]],
    heredoc_marker: pulumi.Input[str],
    signal_stack_name: Optional[pulumi.Input[str]] = None,
    region: Optional[pulumi.Input[str]] = None,
) -> pulumi.Output[str]:
    """Compose the bootstrap script from deferred cluster values."""
    return pulumi.Output.all(
        cluster_name,
        endpoint,
        certificate_authority_data,
        custom_user_data,
        heredoc_marker,
        signal_stack_name,
        region,
    ).apply(
        lambda args: render_user_data(
            cluster_name=args[0],
            endpoint=args[1],
            certificate_authority_data=args[2],
            extra_args=extra_args,
            custom_user_data=args[3],
            heredoc_marker=args[4],
            signal_stack_name=args[5],
            region=args[6],
        )
    )
