#!/usr/bin/env python3
"""
Union site console client

Usage:
    unionclient                        # Interactive session against the server
    unionclient --offline              # Local snapshot only
    unionclient "#tab=free&post=42"    # Open a deep link
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt

from unionclient.config import ClientConfig
from unionclient.controller import AppController
from unionclient.forms import SignupForm, format_phone_number
from unionclient.history import BrowserHistory
from unionclient.ui import ConsoleNotifier, SiteRenderer


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unionclient",
        description="Console client for the union community site",
    )
    parser.add_argument("fragment", nargs="?", default="", help="Deep link, e.g. '#tab=free&post=42'")
    parser.add_argument("--server-url", help="API base URL (default from config)")
    parser.add_argument("--offline", action="store_true", help="Use the local snapshot only")
    parser.add_argument("--data-dir", help="Directory for the local snapshot")
    parser.add_argument("--narrow", action="store_true", help="Narrow-viewport navigation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


async def run_interactive(controller: AppController, console: Console) -> None:
    renderer = SiteRenderer(console)
    await controller.start()
    renderer.render_help()

    while True:
        view = controller.view.state
        renderer.render_header(
            controller.data.settings.site_name,
            view,
            controller.role,
            controller.session.display_name,
        )
        renderer.render_screen(view, controller.board_posts(), controller.selected_post())

        line = Prompt.ask("[bold cyan]>[/bold cyan]", console=console, default="").strip()
        if not line:
            continue
        command, _, rest = line.partition(" ")
        rest = rest.strip()

        if command in ("quit", "exit"):
            break
        elif command == "help":
            renderer.render_help()
        elif command == "tab" and rest:
            controller.change_tab(rest)
        elif command == "open" and rest:
            await controller.select_post(rest)
        elif command == "close":
            await controller.select_post(None)
        elif command == "back":
            controller.history.back()
        elif command == "forward":
            controller.history.forward()
        elif command == "goto" and rest:
            controller.history.navigate_hash(rest)
        elif command == "write":
            if controller.write_click(rest or None):
                title = Prompt.ask("제목", console=console)
                content = Prompt.ask("내용", console=console)
                password = Prompt.ask("비밀번호 (선택)", console=console, default="", password=True)
                await controller.save_post(title, content, password=password or None)
        elif command in ("comment", "reply") and view.selected_post_id:
            parent_id = None
            if command == "reply":
                parent_id, _, rest = rest.partition(" ")
            await controller.add_comment(view.selected_post_id, rest, parent_id=parent_id)
        elif command == "delete" and view.selected_post_id:
            await controller.delete_post(view.selected_post_id, rest or None)
        elif command == "login":
            view.form.login_email = Prompt.ask("이메일", console=console)
            view.form.login_password = Prompt.ask("비밀번호", console=console, password=True)
            await controller.member_login()
        elif command == "admin":
            view.form.admin_password = Prompt.ask("관리자 비밀번호", console=console, password=True)
            await controller.admin_login()
        elif command == "logout":
            await controller.logout()
        elif command == "signup":
            form = SignupForm(
                name=Prompt.ask("성명", console=console),
                birth_date=Prompt.ask("생년월일 (6자리)", console=console),
                phone=format_phone_number(Prompt.ask("연락처", console=console)),
                email=Prompt.ask("이메일", console=console),
                garage=Prompt.ask("소속 차고지 (진관/도봉/송파)", console=console),
                password=Prompt.ask("비밀번호", console=console, password=True),
                password_confirm=Prompt.ask("비밀번호 확인", console=console, password=True),
            )
            if await controller.signup(form):
                console.print("[green]가입 신청이 완료되었습니다. 관리자 승인 후 로그인할 수 있습니다.[/green]")
        else:
            console.print("[yellow]Unknown command. Type 'help'.[/yellow]")

    await controller.shutdown()


def main():
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args()

    config = ClientConfig.load_default()
    if args.server_url:
        config.api_base_url = args.server_url
    if args.offline:
        config.api_base_url = None
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.narrow:
        config.wide_viewport = False
    config.verbose = config.verbose or args.verbose

    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    controller = AppController(
        config,
        ConsoleNotifier(console),
        history=BrowserHistory(initial_hash=args.fragment),
    )

    try:
        asyncio.run(run_interactive(controller, console))
    except KeyboardInterrupt:
        console.print("\n\nGoodbye!")
        sys.exit(0)


if __name__ == "__main__":
    main()
