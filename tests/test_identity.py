"""Tests for hostname canonicalization and classification."""

import unittest
from pathlib import Path

from leadharvest.config import DomainConfig, load_config
from leadharvest.identity.resolver import IdentityResolver, normalize_hostname
from leadharvest.models import HostClass

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


class TestNormalizeHostname(unittest.TestCase):

    def test_strips_port_case_and_trailing_dot(self):
        self.assertEqual(normalize_hostname("WWW.Example.COM:8080"), "www.example.com")
        self.assertEqual(normalize_hostname("example.com."), "example.com")
        self.assertEqual(normalize_hostname(""), "")


class TestIdentityResolver(unittest.TestCase):
    """Test identity resolution with the shipped domain tables."""

    @classmethod
    def setUpClass(cls):
        config = load_config(str(CONFIG_PATH))
        cls.resolver = IdentityResolver(DomainConfig.from_dict(config["domains"]))

    def test_subdomains_collapse_to_registrable_domain(self):
        self.assertEqual(self.resolver.canonicalize("www.example.com"), "example.com")
        self.assertEqual(self.resolver.canonicalize("example.com"), "example.com")
        self.assertEqual(self.resolver.canonicalize("app.eu.example.com"), "example.com")

    def test_multi_part_public_suffix(self):
        self.assertEqual(self.resolver.canonicalize("www.example.co.uk"), "example.co.uk")

    def test_multi_tenant_hosts_stay_distinct(self):
        self.assertEqual(self.resolver.canonicalize("a.vercel.app"), "a.vercel.app")
        self.assertEqual(self.resolver.canonicalize("b.vercel.app"), "b.vercel.app")
        self.assertEqual(
            self.resolver.canonicalize("myproject.github.io"), "myproject.github.io"
        )

    def test_multi_tenant_suffix_needs_label_boundary(self):
        # "notvercel.app" is an ordinary domain, not a vercel.app tenant
        self.assertFalse(self.resolver.is_multi_tenant("notvercel.app"))
        self.assertEqual(self.resolver.canonicalize("www.notvercel.app"), "notvercel.app")

    def test_malformed_hostnames_fall_back(self):
        self.assertEqual(self.resolver.canonicalize("localhost"), "localhost")
        self.assertEqual(self.resolver.canonicalize("10.0.0.1"), "10.0.0.1")
        self.assertEqual(self.resolver.canonicalize(""), "")
        self.assertEqual(self.resolver.registrable_domain("not a host"), "not a host")

    def test_classify_skip(self):
        self.assertIs(self.resolver.classify("github.com"), HostClass.SKIP)
        self.assertIs(self.resolver.classify("someone.medium.com"), HostClass.SKIP)
        self.assertIs(self.resolver.classify("chrome.google.com"), HostClass.SKIP)
        self.assertIs(self.resolver.classify("www.reddit.com"), HostClass.SKIP)

    def test_classify_builder(self):
        self.assertIs(self.resolver.classify("acme.webflow.io"), HostClass.BUILDER)
        self.assertIs(self.resolver.classify("acme.carrd.co"), HostClass.BUILDER)

    def test_classify_ordinary(self):
        self.assertIs(self.resolver.classify("servercompass.app"), HostClass.ORDINARY)
        self.assertIs(self.resolver.classify("www.google.com"), HostClass.ORDINARY)
        self.assertIs(self.resolver.classify("myproject.github.io"), HostClass.ORDINARY)

    def test_repository_hosts(self):
        self.assertTrue(self.resolver.is_repository_host("github.com"))
        self.assertTrue(self.resolver.is_repository_host("www.github.com"))
        self.assertFalse(self.resolver.is_repository_host("gitlab.com"))

    def test_resolution_targets(self):
        self.assertTrue(self.resolver.is_resolution_target("realproduct.dev"))
        self.assertFalse(self.resolver.is_resolution_target("docs.github.com"))
        self.assertFalse(self.resolver.is_resolution_target("github.githubassets.com"))
        self.assertFalse(self.resolver.is_resolution_target("twitter.com"))
        self.assertFalse(self.resolver.is_resolution_target("www.google.de"))
        self.assertFalse(self.resolver.is_resolution_target(""))


class TestCustomTables(unittest.TestCase):

    def test_empty_tables_classify_everything_ordinary(self):
        resolver = IdentityResolver(DomainConfig.from_dict({}))
        self.assertIs(resolver.classify("github.com"), HostClass.ORDINARY)
        self.assertEqual(resolver.canonicalize("a.vercel.app"), "vercel.app")


if __name__ == "__main__":
    unittest.main()
