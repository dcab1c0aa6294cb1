"""Sidecar Injector.

Small Kubernetes controller that watches Deployments and makes sure every
pod template carries the configured sidecar container:
 - injects the sidecar when it is missing
 - leaves Deployments that already have it untouched
 - relies on resourceVersion-checked writes plus re-delivery on conflict

The reconciliation core is kept tiny so it can be audited and explained.
"""
