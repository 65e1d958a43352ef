from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Paged FHIR directory searches (JSON output)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    # Consents of a patient, or one consent by id
    cs = add_subparser(sub, "consents")
    cs.add_argument("--id", help="Consent logical id; returns that consent only")
    cs.add_argument("--patient", help="Patient logical id")
    cs.add_argument("--practitioner", help="Practitioner logical id; matches consents naming one of their care teams")
    cs.add_argument("--status", help="Consent status (e.g. active, draft)")
    cs.add_argument("--general-designation", action="store_true", help="Only general designation consents")

    ca = add_subparser(sub, "consent-actors")
    ca.add_argument("--patient", help="Patient logical id; enables related-person actors")
    ca.add_argument("--name", help="Actor name filter")
    ca.add_argument("--actor-type", choices=["practitioner", "organization", "relatedPerson"])
    ca.add_argument("--assigned", action="append", default=[], help="Actor id already on the consent; can repeat")

    ts = add_subparser(sub, "tasks")
    ts.add_argument("--id", help="Task logical id; returns that task only")
    ts.add_argument("--status", action="append", default=[], help="Task status; can repeat")
    ts.add_argument("--search-key", choices=["patientId", "organizationId", "taskId"])
    ts.add_argument("--search-value")

    cm = add_subparser(sub, "communications")
    cm.add_argument("--status", action="append", default=[], help="Communication status; can repeat")
    cm.add_argument("--search-key", choices=["patientId", "communicationId"])
    cm.add_argument("--search-value")

    cr = sub.add_parser("communication-recipients")
    cr.add_argument("--patient", required=True)
    cr.add_argument("--id", required=True, help="Communication logical id")

    hs = add_subparser(sub, "healthcare-services")
    hs.add_argument("--id", help="HealthcareService logical id; returns that service only")
    hs.add_argument("--organization", help="Organization logical id")
    hs.add_argument("--location", help="Location logical id; requires --organization")
    hs.add_argument("--assigned-to-location", help="Flag services already assigned to this location")
    hs.add_argument("--status", action="append", default=[], help="active/true or inactive/false; can repeat")
    hs.add_argument("--search-key", help="NAME, LOGICALID or IDENTIFIERVALUE")
    hs.add_argument("--search-value")

    pr = add_subparser(sub, "practitioners")
    pr.add_argument("--search-type", choices=["name", "identifier"])
    pr.add_argument("--search-value")
    pr.add_argument("--show-inactive", action="store_true")

    return ap


def add_subparser(sub, name):
    """
    Adds a paged search subcommand to the CLI argument parser.

    Every paged command takes the same ``--page`` and ``--size`` options; sizes outside
    the configured range fall back to the default size for the resource.

    Args:
        sub: The subparsers object from argparse.
        name: The name of the subcommand to add.

    Returns:
        argparse.ArgumentParser: The configured subparser.
    """
    result = sub.add_parser(name)
    result.add_argument("--page", type=int, default=None, help="1-based page number")
    result.add_argument("--size", type=int, default=None, help="Page size")
    return result
