from __future__ import annotations

from dataclasses import dataclass

from .api_models import ContainerSpec, ManagedResource
from .settings import Settings, settings


@dataclass(frozen=True)
class SidecarPolicy:
    """Describes the sidecar every managed Deployment must carry.

    The container is always named "<deployment name><suffix>".
    """

    image: str = "busybox"
    command: tuple[str, ...] = ("sleep",)
    args: tuple[str, ...] = ("36000",)
    suffix: str = "-sidecar"

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "SidecarPolicy":
        return cls(image=s.sidecar_image, command=s.sidecar_command, args=s.sidecar_args, suffix=s.sidecar_suffix)

    def sidecar_for(self, resource: ManagedResource) -> ContainerSpec:
        return ContainerSpec(
            name=f"{resource.name}{self.suffix}",
            image=self.image,
            command=list(self.command),
            args=list(self.args),
        )


def matches(container: ContainerSpec, sidecar: ContainerSpec) -> bool:
    """True when *container* is the sidecar.

    Only name and image are compared. A sidecar whose command/args drifted
    from the current policy still counts as injected and is never rewritten.
    """
    return container.name == sidecar.name and container.image == sidecar.image
