"""Interactive CLI simulator — exercise the OTP lifecycle without HTTP."""

import asyncio
import logging
from datetime import timedelta

from otp_service.channels.console import ConsoleChannel
from otp_service.core.errors import OTPError
from otp_service.core.models import OTPConfig, utc_now
from otp_service.core.service import OTPService, UnknownChannelError

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"

HELP = (
    "  send [sms|email]      issue a code for the current identifier\n"
    "  resend [sms|email]    issue a new code, invalidating the old one\n"
    "  verify <code>         check a code\n"
    "  status                show the pending challenge\n"
    "  wait <seconds>        advance the simulated clock\n"
    "  sweep                 run the cleanup sweeper now\n"
    "  switch                change identifier\n"
    "  quit                  exit"
)


class SimulatedClock:
    """Wall clock plus a manually advanced offset."""

    def __init__(self) -> None:
        self.offset = timedelta()

    def __call__(self):
        return utc_now() + self.offset


async def main() -> None:
    logging.basicConfig(level=logging.WARNING, format=f"{DIM}%(name)s: %(message)s{RESET}")

    print(f"\n{BOLD}{'=' * 52}")
    print("  🔐  OTP Service — Lifecycle Simulator")
    print(f"{'=' * 52}{RESET}\n")
    print(f"{DIM}Codes are printed by the console channel instead of being delivered.{RESET}")
    print(f"{DIM}{HELP}{RESET}\n")

    identifier = input(f"{YELLOW}Enter phone number or email: {RESET}").strip() or "254700111222"
    print(f"{DIM}Simulating as {identifier}{RESET}\n")

    # ── Set up the core with console channels ────────────
    clock = SimulatedClock()
    channels = {"sms": ConsoleChannel("sms"), "email": ConsoleChannel("email")}
    service = OTPService(channels=channels, config=OTPConfig(), clock=clock)
    default_channel = "email" if "@" in identifier else "sms"

    while True:
        try:
            user_input = input(f"{BLUE}{BOLD}>{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not user_input:
            continue

        command, *args = user_input.split()
        command = command.lower()

        try:
            if command == "quit":
                print(f"{DIM}Goodbye!{RESET}")
                break

            if command == "switch":
                identifier = input(f"{YELLOW}New identifier: {RESET}").strip()
                default_channel = "email" if "@" in identifier else "sms"
                print(f"{DIM}Switched to {identifier}{RESET}\n")

            elif command in ("send", "resend"):
                channel = args[0] if args else default_channel
                op = service.send_otp if command == "send" else service.resend_otp
                result = await op(identifier, channel)
                code = channels[channel].last_code
                print(
                    f"{GREEN}✅ Sent via {result.channel}: {BOLD}{code}{RESET}"
                    f"{GREEN} (expires in {result.expires_in_seconds}s){RESET}\n"
                )

            elif command == "verify":
                if not args:
                    print(f"{RED}Usage: verify <code>{RESET}\n")
                    continue
                service.verify_otp(identifier, args[0])
                print(f"{GREEN}✅ Verified!{RESET}\n")

            elif command == "status":
                status = service.get_status(identifier)
                if status.exists:
                    print(
                        f"Pending: expires in {status.expires_in_seconds}s, "
                        f"{status.attempts_remaining} attempt(s) remaining\n"
                    )
                else:
                    print(f"{DIM}No pending OTP{RESET}\n")

            elif command == "wait":
                seconds = int(args[0]) if args else 60
                clock.offset += timedelta(seconds=seconds)
                print(f"{DIM}Clock advanced by {seconds}s{RESET}\n")

            elif command == "sweep":
                before = len(service.store)
                service.cleanup_expired()
                print(f"{DIM}Swept {before - len(service.store)} expired challenge(s){RESET}\n")

            else:
                print(f"{DIM}{HELP}{RESET}\n")

        except OTPError as exc:
            print(f"{RED}❌ {exc.code}: {exc}{RESET}\n")
        except ValueError as exc:
            print(f"{RED}❌ {exc}{RESET}\n")
        except UnknownChannelError:
            print(f"{RED}❌ Unknown channel; use sms or email{RESET}\n")

    await service.close()


if __name__ == "__main__":
    asyncio.run(main())
