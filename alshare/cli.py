import argparse
import getpass
import json
import os
import sys
from dataclasses import asdict
from typing import Callable, List, Optional

from .api import ensure_folder, get_direct_link, remove_many, upload_file
from .browser import BrowseResult, PaginatedBrowser
from .classify import PromptReason
from .client import AlistClient
from .config import DEFAULT_SESSION_PATH, Settings, load_settings, share_settings_from
from .consumer import LinkConsumer, UnlockState
from .errors import AlshareError
from .models import CredentialAuth, TokenAuth
from .password_store import DirectoryPasswordStore
from .resolver import resolve_selection
from .session_store import load_password_store, load_session, save_session
from .share import create_share_link
from .utils import format_bytes, get_logger, normalize_path, split_path

MAX_PASSWORD_ATTEMPTS = 3

PROMPT_MESSAGES = {
    PromptReason.INCORRECT: "Password incorrect or no permission for {path}",
    PromptReason.PATH_OR_PASSWORD_INVALID: "{path} was not found or needs a password",
    PromptReason.POSSIBLY_REQUIRED: "{path} may require a password",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='alshare')
    p.add_argument('--session', default=os.getenv("ALSHARE_SESSION", DEFAULT_SESSION_PATH))
    sub = p.add_subparsers(dest='cmd', required=True)

    login = sub.add_parser('login')
    login.add_argument('--server')
    login.add_argument('--username')
    login.add_argument('--password')

    ls = sub.add_parser('ls')
    ls.add_argument('path', nargs='?', default='/')
    ls.add_argument('--password')
    ls.add_argument('--page', type=int, default=1)
    ls.add_argument('--all', action='store_true')
    ls.add_argument('--json', action='store_true')

    link = sub.add_parser('link')
    link.add_argument('path')

    put = sub.add_parser('put')
    put.add_argument('local')
    put.add_argument('remote_dir')
    put.add_argument('--name')

    mkdir = sub.add_parser('mkdir')
    mkdir.add_argument('parent')
    mkdir.add_argument('name')

    rm = sub.add_parser('rm')
    rm.add_argument('paths', nargs='+')

    share = sub.add_parser('share')
    share.add_argument('paths', nargs='+')
    share.add_argument('--password')
    share.add_argument('--title')
    share.add_argument('--viewer')

    open_ = sub.add_parser('open')
    open_.add_argument('url')
    open_.add_argument('--password')

    share_cfg = sub.add_parser('share-settings')
    share_cfg.add_argument('--default-password')
    share_cfg.add_argument('--passwordless', choices=('on', 'off'))

    return p


def make_client(settings: Settings) -> AlistClient:
    auth = None
    if settings.token:
        auth = TokenAuth(settings.token)
    elif settings.username:
        auth = CredentialAuth(settings.username, settings.password or "")
    return AlistClient(
        base_url=settings.server_url,
        auth=auth,
        custom_domain=settings.custom_domain,
        timeout=settings.timeout,
        http_log_path=settings.http_log_path,
    )


def _ask_password(prompt: str) -> Optional[str]:
    if not sys.stdin.isatty():
        return None
    return getpass.getpass(prompt) or None


def _prompt_message(result: BrowseResult) -> str:
    template = PROMPT_MESSAGES.get(result.reason, "{path} needs a password")
    return template.format(path=result.state.path)


def _list(browser: PaginatedBrowser, path: str, password: Optional[str], ask: Callable[[str], Optional[str]]) -> BrowseResult:
    result = browser.open(path, password)
    attempts = 0
    while not result.ok and result.needs_password and attempts < MAX_PASSWORD_ATTEMPTS:
        print(_prompt_message(result), file=sys.stderr)
        entered = ask(f"Password for {browser.state.path}: ")
        if not entered:
            break
        attempts += 1
        result = browser.unlock(entered)
    return result


def _print_items(browser: PaginatedBrowser, as_json: bool) -> None:
    state = browser.state
    if as_json:
        rows = [dict(asdict(item), path=browser.child_path(item)) for item in state.items]
        print(json.dumps({"path": state.path, "total": state.total, "items": rows}, indent=2))
        return
    for item in state.items:
        kind = "d" if item.is_dir else "-"
        size = "-" if item.is_dir else format_bytes(item.size)
        print(f"{kind}\t{size}\t{item.modified}\t{item.name}")
    if state.has_more:
        print(f"... page {state.current_page}/{state.total_pages} ({len(state.items)}/{state.total} items)")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = get_logger('alshare')

    session = load_session(args.session)
    settings = load_settings(session)
    store = load_password_store(session)
    stored_share = share_settings_from(session)

    def persist(client: AlistClient, passwords: DirectoryPasswordStore) -> None:
        save_session(args.session, client.connection_config(), passwords, stored_share)

    if args.cmd == 'share-settings':
        if args.default_password is not None:
            stored_share.default_password = args.default_password or None
        if args.passwordless is not None:
            stored_share.passwordless_enabled = args.passwordless == 'on'
        with make_client(settings) as client:
            persist(client, store)
        state = "on" if stored_share.passwordless_active else "off"
        print(f'OK: passwordless sharing {state}')
        return 0

    if args.cmd == 'login':
        if args.server:
            settings.server_url = args.server
        settings.username = args.username or settings.username or input('Username: ')
        settings.password = args.password or settings.password or getpass.getpass('Password: ')
        settings.token = None
        with make_client(settings) as client:
            try:
                client.login()
            except AlshareError as exc:
                print(f'Login failed: {exc}', file=sys.stderr)
                return 1
            persist(client, store)
        print(f'OK: session saved to {args.session}')
        return 0

    client = make_client(settings)
    try:
        if args.cmd == 'ls':
            browser = PaginatedBrowser(client, store, page_size=settings.page_size)
            result = _list(browser, args.path, args.password, _ask_password)
            while result.ok and browser.state.current_page < args.page and browser.state.has_more:
                result = browser.load_more()
            if result.ok and args.all and browser.state.has_more:
                result = browser.load_all()
            if not result.ok:
                message = _prompt_message(result) if result.needs_password else result.message
                print(f'Error: {message}', file=sys.stderr)
                return 2
            persist(client, store)
            _print_items(browser, args.json)
            return 0

        if args.cmd == 'link':
            print(get_direct_link(client, args.path, password=store.get(split_path(args.path)[0])))
            return 0

        if args.cmd == 'put':
            upload_file(client, args.remote_dir, args.local, name=args.name, password=store.get(args.remote_dir))
            print('OK')
            return 0

        if args.cmd == 'mkdir':
            print(ensure_folder(client, args.parent, args.name))
            return 0

        if args.cmd == 'rm':
            batch = remove_many(client, args.paths)
            for row in batch.results:
                print(f"{'OK' if row.success else 'FAIL'}\t{row.path}" + (f"\t{row.error}" if row.error else ""))
            print(f"Deleted {batch.success_count}, failed {batch.fail_count}")
            return 0 if batch.success else 1

        if args.cmd == 'share':
            resolved = resolve_selection(client, args.paths, None, store)
            for failure in resolved.failures:
                print(f'Warning: could not list {failure.path}: {failure.error}', file=sys.stderr)
            if resolved.empty:
                print('Nothing to share: the selection contains no images', file=sys.stderr)
                return 1
            password = args.password
            if not password and not settings.share.passwordless_active:
                password = _ask_password('Share password: ')
                if not password:
                    print('Error: a share password is required', file=sys.stderr)
                    return 1
            selected = [normalize_path(p) for p in args.paths]
            single = len(selected) == 1 and resolved.paths == selected
            link = create_share_link(
                client,
                settings.share,
                args.viewer or settings.viewer_url,
                password=password,
                path=resolved.paths[0] if single else None,
                image_paths=None if single else resolved.paths,
                title=args.title,
            )
            persist(client, store)
            print(link)
            return 0

        if args.cmd == 'open':
            consumer = LinkConsumer(args.url)
            outcome = consumer.start()
            password = args.password
            while outcome.state is UnlockState.PROMPTING and consumer.attempts < MAX_PASSWORD_ATTEMPTS:
                if outcome.error:
                    print(f'Error: {outcome.error}', file=sys.stderr)
                password = password or _ask_password('Link password: ')
                if not password:
                    outcome = consumer.cancel()
                    break
                outcome = consumer.submit(password)
                password = None
            if outcome.state is not UnlockState.UNLOCKED:
                print(f'Error: {outcome.error or "link is still locked"}', file=sys.stderr)
                return 1
            with consumer.open_client(timeout=settings.timeout, http_log_path=settings.http_log_path) as viewer:
                items = consumer.fetch_items(viewer)
            if consumer.title:
                print(f'# {consumer.title}')
            for item in items:
                print(f"{item.path}\t{item.url if item.ok else 'ERROR ' + str(item.error)}")
            return 0 if all(item.ok for item in items) else 1
    except AlshareError as exc:
        logger.debug('Command %s failed', args.cmd, exc_info=True)
        print(f'Error: {exc}', file=sys.stderr)
        return 1
    finally:
        client.close()

    return 1


if __name__ == '__main__':
    raise SystemExit(main())
