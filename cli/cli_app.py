"""
CLI interface for Fundex.

This module provides an interactive command-line interface for verifying
expense receipts and checking GST numbers.
"""

import os
import json
import asyncio
import logging
from typing import Any, Dict
from datetime import datetime
import cmd
import argparse
import shlex

from models.expense import ExpenseSubmission
from tools.bill_extraction import extract_amount_from_bill, extract_gst_from_bill
from tools.fraud_detection import calculate_fraud_score, generate_fraud_report
from tools.document_ai import get_ocr_settings
from tools.gst_validation import get_registry_settings, validate_gst_online
from tools.reliability_score import calculate_reliability_score, generate_reliability_report

logger = logging.getLogger("fundex.cli")


class FundexCLI(cmd.Cmd):
    """Interactive CLI for Fundex."""

    intro = "Welcome to the Fundex CLI. Type help or ? to list commands.\n"
    prompt = "fundex> "

    def __init__(self, agent: Any, config: Dict[str, Any]):
        """
        Initialize the CLI.

        Args:
            agent: Expense verification agent
            config: Configuration dictionary
        """
        super().__init__()
        self.agent = agent
        self.config = config
        self.current_session_id = f"cli_{datetime.now().timestamp()}"
        self.env = config.get("environment", "development")

    def emptyline(self):
        """Do nothing on empty line."""
        pass

    def do_exit(self, arg):
        """Exit the Fundex CLI."""
        print("Goodbye!")
        return True

    def do_quit(self, arg):
        """Exit the Fundex CLI."""
        return self.do_exit(arg)

    def do_config(self, arg):
        """Display or reload configuration."""
        args = shlex.split(arg)
        parser = argparse.ArgumentParser(prog="config")
        parser.add_argument("action", choices=["show", "reload"], help="Action to perform")
        parser.add_argument("key", nargs="?", help="Configuration key, e.g. gst.registry_url")

        try:
            parsed_args = parser.parse_args(args)

            if parsed_args.action == "show":
                if parsed_args.key:
                    value = self.config
                    for key in parsed_args.key.split("."):
                        if not isinstance(value, dict) or key not in value:
                            print(f"Configuration key not found: {parsed_args.key}")
                            return
                        value = value[key]
                    print(f"{parsed_args.key} = {json.dumps(value, indent=2)}")
                else:
                    print(json.dumps(self.config, indent=2))

            elif parsed_args.action == "reload":
                from config.config_loader import load_config
                self.config = load_config(reload=True)
                get_ocr_settings.cache_clear()
                get_registry_settings.cache_clear()
                print("Configuration reloaded.")

        except SystemExit:
            # argparse already printed usage
            pass
        except Exception as e:
            print(f"Error: {e}")

    def do_analyze(self, arg):
        """Verify an expense receipt: analyze <receipt> <claimed_amount> [--remaining N]"""
        args = shlex.split(arg)
        parser = argparse.ArgumentParser(prog="analyze")
        parser.add_argument("receipt", help="Receipt image path or URL")
        parser.add_argument("claimed_amount", type=float, help="Amount claimed")
        parser.add_argument("--remaining", type=float, help="Remaining balance of the request")
        parser.add_argument("--json", action="store_true", help="Print the full result as JSON")

        try:
            parsed_args = parser.parse_args(args)

            if not parsed_args.receipt.startswith(("http://", "https://")) and not os.path.exists(parsed_args.receipt):
                print(f"Receipt not found: {parsed_args.receipt}")
                return

            context = {"user_id": "cli_user", "session_id": self.current_session_id}
            analysis = asyncio.run(self.agent.analyze_expense(
                parsed_args.receipt,
                claimed_amount=parsed_args.claimed_amount,
                remaining_balance=parsed_args.remaining,
                context=context,
            ))

            if parsed_args.json:
                print(json.dumps(analysis.model_dump(mode="json"), indent=2, ensure_ascii=False))
                return

            print(analysis.fraud_report)
            print(generate_reliability_report(analysis.reliability))
            print(f"Verification status: {analysis.verification_status.value}")
            for flag in analysis.fraud_flags:
                print(f"  - {flag}")

        except SystemExit:
            pass
        except Exception as e:
            print(f"Error: {e}")

    def do_extract(self, arg):
        """Extract amount and GSTIN from an OCR text file: extract <text_file>"""
        args = shlex.split(arg)
        parser = argparse.ArgumentParser(prog="extract")
        parser.add_argument("text_file", help="File containing receipt OCR text")

        try:
            parsed_args = parser.parse_args(args)

            if not os.path.exists(parsed_args.text_file):
                print(f"File not found: {parsed_args.text_file}")
                return

            with open(parsed_args.text_file, "r", encoding="utf-8") as f:
                text = f.read()

            print(json.dumps({
                "amount": extract_amount_from_bill(text),
                "gst_number": extract_gst_from_bill(text),
                "text_length": len(text),
            }, indent=2))

        except SystemExit:
            pass
        except Exception as e:
            print(f"Error: {e}")

    def do_gst(self, arg):
        """Validate a GST number: gst <gstin>"""
        args = shlex.split(arg)
        parser = argparse.ArgumentParser(prog="gst")
        parser.add_argument("gst_number", help="GSTIN to validate")

        try:
            parsed_args = parser.parse_args(args)
            result = validate_gst_online(parsed_args.gst_number)
            print(json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2))

        except SystemExit:
            pass
        except Exception as e:
            print(f"Error: {e}")

    def do_score(self, arg):
        """Score expense fields from a JSON file: score <submission.json>"""
        args = shlex.split(arg)
        parser = argparse.ArgumentParser(prog="score")
        parser.add_argument("submission_file", help="JSON file with expense fields")

        try:
            parsed_args = parser.parse_args(args)

            if not os.path.exists(parsed_args.submission_file):
                print(f"File not found: {parsed_args.submission_file}")
                return

            with open(parsed_args.submission_file, "r", encoding="utf-8") as f:
                submission = ExpenseSubmission.model_validate(json.load(f))

            print(generate_fraud_report(calculate_fraud_score(submission)))
            print(generate_reliability_report(calculate_reliability_score(submission)))

        except SystemExit:
            pass
        except Exception as e:
            print(f"Error: {e}")

    def do_status(self, arg):
        """Show CLI status."""
        print(f"Fundex Status ({self.env} environment)")
        print("-" * 50)
        print(f"Environment: {self.env}")
        print(f"Session ID: {self.current_session_id}")
        print(f"Agent: {getattr(self.agent, 'name', type(self.agent).__name__)}")
        print("-" * 50)


def run_cli(agent: Any, config: Dict[str, Any]) -> None:
    """
    Run the Fundex CLI.

    Args:
        agent: Expense verification agent
        config: Configuration dictionary
    """
    cli = FundexCLI(agent=agent, config=config)
    cli.cmdloop()
