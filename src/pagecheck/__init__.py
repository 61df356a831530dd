"""Checks a static HTML page for structure, security and accessibility.

What follows here is a quick tour of the code.

Overview
========

pagecheck loads one HTML document from disk and runs a flat list of
independent checks against it. A check looks at the raw text, at the
parsed document or at both, and records what it finds on a
L{pagecheck.report.Report}. A report that received a warning or error
is a failed check; all other reports passed.

Two checks delegate to validators that live outside the suite: markup
conformance (the html5lib parser offline, or the Nu Html Checker web
service) and accessibility auditing against a WCAG level. Both sit
behind the L{pagecheck.validator.Validator} interface.

Entry Point
===========

L{pagecheck.cmdline.main} parses command line arguments and then calls
L{pagecheck.cmdline.run} to start a check run.

A check run loads a L{pagecheck.fixture.Fixture}, creates a
L{pagecheck.report.Scribe} to collect the reports and lets a
L{pagecheck.checks.Suite} run every check on the fixture. Afterwards,
plugins are given a chance to create their final output, for example
a JUnit XML file.

Key Concepts
============

The fixture is read-only. Every check that needs a document tree gets
its own freshly parsed L{pagecheck.document.Document}, so no check can
influence another.

The values the checks compare against, such as the expected title or
the maximum file size, are collected in
L{pagecheck.checks.Expectations}.
"""
