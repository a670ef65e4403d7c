"""
agentloop CLI - run one planning-flow turn from the command line

Usage:
  agentloop "summarize the README"          # One turn with the LLM worker
  agentloop --script actions.json "demo"    # Replay scripted actions, no model
  agentloop --list-services                 # Show configured capability services
  agentloop --interactive                   # Prompt for turns until 'exit'
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from ..agent.agents import get_worker_registry
from ..agent.core.llm import OpenAIClientAdapter
from ..agent.core.runtime.tool_call_agent import ToolCallAgent
from ..agent.memory import Memory
from ..agent.registry import CapabilityRegistry
from ..agent.session import ExecutionSession
from ..agent.workflows import FlowFactory, FlowType, PlanManager
from ..services.config_service import AppConfig, ConfigService

logger = logging.getLogger(__name__)

COMPLETED_PREFIX = "Flow execution completed"
EXIT_COMMANDS = ("exit", "quit")


class AgentLoopCLI:
    """
    Main CLI class for agentloop

    Wires configuration, the capability registry, a worker and the planning
    flow together, then runs turns and prints the resulting plan.
    """

    def __init__(self):
        self.config_service: Optional[ConfigService] = None
        self.registry: Optional[CapabilityRegistry] = None

    def setup_logging(self, verbose: bool = False) -> None:
        log_level = logging.DEBUG if verbose else logging.INFO
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    def create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser for CLI

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog='agentloop',
            description='Run a plan-driven tool-calling agent',
            epilog='Examples:\n'
                   '  agentloop "list the files in /tmp"\n'
                   '  agentloop --script actions.json "demo"\n'
                   '  agentloop --list-services\n'
                   '  agentloop --interactive',
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        parser.add_argument(
            'prompt',
            nargs='?',
            help='Request for the agent'
        )

        parser.add_argument(
            '--config',
            metavar='PATH',
            help='Path to the JSON config file (default: config/agentloop.json)'
        )

        parser.add_argument(
            '--model',
            help='Model name, overrides the config file'
        )

        parser.add_argument(
            '--max-steps',
            type=int,
            help='Maximum worker steps per turn'
        )

        parser.add_argument(
            '--plan-id',
            default='default',
            help='Plan the turn works against (default: default)'
        )

        parser.add_argument(
            '--script',
            metavar='PATH',
            help='JSON list of actions for the scripted worker'
        )

        parser.add_argument(
            '--list-services',
            action='store_true',
            help='List capability services and exit'
        )

        parser.add_argument(
            '--interactive',
            action='store_true',
            help='Enter interactive mode'
        )

        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Enable verbose output'
        )

        return parser

    def load_config(self, args: argparse.Namespace) -> AppConfig:
        self.config_service = ConfigService(args.config)
        config = self.config_service.load_config()
        if args.model:
            config.llm.model = args.model
        if args.max_steps is not None:
            config.agent.max_steps = max(1, args.max_steps)
        return config

    def create_worker(self, args: argparse.Namespace, config: AppConfig, registry: CapabilityRegistry):
        workers = get_worker_registry()
        if args.script:
            with open(args.script, 'r', encoding='utf-8') as f:
                actions = json.load(f)
            if not isinstance(actions, list):
                raise ValueError(f"{args.script} must contain a JSON list of actions")
            return workers.create('scripted', actions=actions)

        return workers.create(
            'llm',
            llm=OpenAIClientAdapter(config.llm.base_url),
            model=config.llm.model,
            tools_provider=registry.to_openai_tools,
            system_prompt=config.agent.system_prompt,
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        )

    def print_services(self, registry: CapabilityRegistry) -> None:
        for service in registry.get_all_services():
            state = 'available' if service.available else 'unavailable'
            kind = 'builtin' if service.builtin else f'priority {service.priority}'
            print(f"{service.name} ({state}, {kind})")
            for capability in sorted(service.capabilities):
                print(f"  - {capability}")

    async def run_async(self, args: argparse.Namespace) -> int:
        config = self.load_config(args)
        session = ExecutionSession()
        plan_manager = PlanManager()
        self.registry = CapabilityRegistry(
            session,
            plan_manager=plan_manager,
            workspace_root=config.agent.workspace_root,
            bash_timeout_ms=config.agent.bash_timeout_ms,
        )

        try:
            await self.registry.initialize(
                self.config_service.get_service_configs(),
                invalid_services=self.config_service.get_invalid_services(),
            )

            if args.list_services:
                self.print_services(self.registry)
                return 0

            agent = ToolCallAgent(
                self.create_worker(args, config, self.registry),
                self.registry,
                memory=Memory(retention_floor=config.agent.retention_floor),
                session=session,
                max_steps=config.agent.max_steps,
                duplicate_threshold=config.agent.duplicate_threshold,
            )
            flow = FlowFactory.create_flow(
                FlowType.PLANNING, agent, plan_manager=plan_manager, session=session, plan_id=args.plan_id
            )

            if args.interactive:
                return await self.interactive_loop(flow)

            status = await flow.execute(args.prompt)
            print(status)
            print()
            print(flow.get_plan_text())
            return 0 if status.startswith(COMPLETED_PREFIX) else 1
        finally:
            await self.registry.shutdown()

    async def interactive_loop(self, flow) -> int:
        print("agentloop interactive mode. Type 'exit' to quit.")
        exit_code = 0
        while True:
            try:
                prompt = await asyncio.to_thread(input, "agentloop> ")
            except EOFError:
                break
            prompt = prompt.strip()
            if not prompt:
                continue
            if prompt.lower() in EXIT_COMMANDS:
                break
            status = await flow.execute(prompt)
            exit_code = 0 if status.startswith(COMPLETED_PREFIX) else 1
            print(status)
            print()
            print(flow.get_plan_text())
        return exit_code

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with provided arguments

        Args:
            args: Command line arguments (defaults to sys.argv)

        Returns:
            Exit code (0 for success, 1 for error)
        """
        parser = self.create_parser()
        parsed_args = parser.parse_args(args)

        if not (parsed_args.prompt or parsed_args.interactive or parsed_args.list_services):
            parser.print_help()
            return 1

        self.setup_logging(parsed_args.verbose)

        try:
            return asyncio.run(self.run_async(parsed_args))
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 1
        except (OSError, ValueError) as e:
            print(f"Error: {e}")
            if parsed_args.verbose:
                logger.exception("CLI operation failed")
            return 1


def main() -> int:
    """
    Main entry point for agentloop CLI

    Returns:
        Exit code (0 for success, 1 for error)
    """
    cli = AgentLoopCLI()
    return cli.run()


if __name__ == '__main__':
    sys.exit(main())
