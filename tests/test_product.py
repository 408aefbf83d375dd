"""
Tests for hcinstall.product module.
"""

from __future__ import annotations

import sys

import pytest

from conftest import posix_only
from hcinstall.exceptions import ConfigError, ExecutionError
from hcinstall.product import (
    TERRAFORM,
    VAULT,
    BuildInstructions,
    Product,
    get_product,
    list_products,
    register_product,
)
from hcinstall.versioning import parse_version

pytestmark = pytest.mark.unit


class TestRegistry:
    """Tests for the product registry."""

    def test_builtins_registered(self):
        """Test that terraform and vault are available by name."""
        assert get_product("terraform") is TERRAFORM
        assert get_product("vault") is VAULT
        assert {"terraform", "vault"} <= set(list_products())

    def test_unknown_product(self):
        """Test that an unknown name lists the available products."""
        with pytest.raises(ConfigError, match="terraform"):
            get_product("nope")

    def test_register_custom_product(self):
        """Test registering a product by name."""
        product = Product(name="example-test-product")
        register_product(product)
        assert get_product("example-test-product") is product


class TestProduct:
    """Tests for Product behavior."""

    def test_binary_name(self):
        """Test the platform executable name."""
        expected = "terraform.exe" if sys.platform.startswith("win") else "terraform"
        assert TERRAFORM.binary_name() == expected

    def test_executable_override(self):
        """Test that executable replaces the name for the binary."""
        product = Product(name="consul-template-x", executable="ctx")
        assert product.binary_name().startswith("ctx")

    def test_parse_version(self):
        """Test extracting the version from version output."""
        output = "Terraform v1.3.7\non linux_amd64\n"
        assert TERRAFORM.parse_version(output) == parse_version("1.3.7")

    def test_parse_version_failure(self):
        """Test that output without a version raises ValueError."""
        with pytest.raises(ValueError, match="no vault version"):
            VAULT.parse_version("command not found")

    @posix_only
    def test_get_version_non_zero_exit(self, tmp_path, ctx):
        """Test that a failing version command is an ExecutionError."""
        script = tmp_path / "terraform"
        script.write_text("#!/bin/sh\necho broken\nexit 3\n")
        script.chmod(0o755)
        with pytest.raises(ExecutionError, match="code 3"):
            TERRAFORM.get_version(script, ctx)

    def test_build_command_substitutes_output(self, tmp_path):
        """Test that {output} becomes the binary path."""
        instructions = BuildInstructions(git_repo_url="repo")
        assert instructions.command(tmp_path / "bin" / "tf") == [
            "go",
            "build",
            "-o",
            str(tmp_path / "bin" / "tf"),
        ]
