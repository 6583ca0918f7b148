"""Terraform-style infrastructure-as-code for HashiCorp Cloud Platform."""

__version__ = "0.1.0"
