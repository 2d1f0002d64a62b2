"""
Console rendering for the union site client
"""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from unionclient.models import Post, UserRole
from unionclient.navigation import encode
from unionclient.view_state import Mode, ViewState

BOARD_TITLES = {
    "home": "홈",
    "intro": "조합소개",
    "notice": "공지사항",
    "notice_all": "공고/공지",
    "family_events": "경조사",
    "free": "자유게시판",
    "resources": "자료실",
    "signup": "조합원 가입",
    "admin": "관리자",
    "trash": "휴지통",
}


class ConsoleNotifier:
    """Message boxes and confirmations on the terminal"""

    def __init__(self, console: Console):
        self.console = console

    def alert(self, message: str) -> None:
        self.console.print(Panel(message, border_style="cyan"))

    def confirm(self, message: str) -> bool:
        return Confirm.ask(message, console=self.console)


class SiteRenderer:
    """Draws the current screen"""

    def __init__(self, console: Console):
        self.console = console

    def render_header(self, site_name: str, state: ViewState, role: UserRole, user: str):
        location = encode(state.nav_state()) or "#"
        self.console.print(
            f"[bold]{site_name}[/bold]  [dim]{location}[/dim]  "
            f"[green]{role.value}[/green] {user}"
        )
        open_modals = [m.value for m, shown in state.modals.items() if shown]
        if open_modals:
            self.console.print(f"[yellow]open: {', '.join(open_modals)}[/yellow]")

    def render_board(self, board: str, posts: List[Post]):
        table = Table(title=BOARD_TITLES.get(board, board))
        table.add_column("ID", style="dim")
        table.add_column("제목")
        table.add_column("작성자")
        table.add_column("작성일")
        table.add_column("조회", justify="right")

        for post in posts:
            title = f"📌 {post.title}" if post.pinned else post.title
            table.add_row(post.id, title, post.author, post.created_at[:10], str(post.views))

        if not posts:
            self.console.print(f"[dim]{BOARD_TITLES.get(board, board)}: 게시글이 없습니다.[/dim]")
        else:
            self.console.print(table)

    def render_post(self, post: Optional[Post]):
        if post is None:
            self.console.print("[red]게시글을 찾을 수 없습니다.[/red]")
            return

        body = post.content if post.content is not None else "[dim]불러오는 중...[/dim]"
        self.console.print(Panel(
            body,
            title=post.title,
            subtitle=f"{post.author} · {post.created_at[:10]} · 조회 {post.views}",
        ))
        for comment in post.comments or ():
            self.console.print(f"  [bold]{comment.author}[/bold] ({comment.id}): {comment.content}")
            for reply in comment.replies:
                self.console.print(f"    ↳ [bold]{reply.author}[/bold] ({reply.id}): {reply.content}")

    def render_screen(self, state: ViewState, posts: List[Post], selected: Optional[Post]):
        if state.mode == Mode.WRITING:
            target = state.editing_post.title if state.editing_post else (state.writing_type or "")
            self.console.print(f"[cyan]글쓰기[/cyan] {getattr(target, 'value', target)}")
        elif state.mode == Mode.VIEWING_DETAIL:
            self.render_post(selected)
        else:
            self.render_board(state.active_tab, posts)

    def render_help(self):
        table = Table(title="Commands", show_header=False)
        for command, description in [
            ("tab <name>", "게시판/탭 이동"),
            ("open <id>", "게시글 보기"),
            ("close", "목록으로"),
            ("back / forward", "뒤로 / 앞으로"),
            ("goto <#fragment>", "주소 직접 이동"),
            ("write [board]", "글쓰기"),
            ("comment <text>", "현재 글에 댓글"),
            ("reply <comment-id> <text>", "댓글에 답글"),
            ("delete [password]", "현재 글 삭제"),
            ("login / admin / logout", "로그인 / 관리자 / 로그아웃"),
            ("signup", "조합원 가입 신청"),
            ("quit", "종료"),
        ]:
            table.add_row(f"[cyan]{command}[/cyan]", description)
        self.console.print(table)
