"""Streamlit viewer for gtree."""

from __future__ import annotations

import streamlit as st

from gtree import token_store
from gtree.cache import TTLCache
from gtree.config import Settings
from gtree.providers.github import GitHubError, GitHubProvider, UpstreamRateLimitError
from gtree.service import InvalidRepoError, TreeService
from gtree.url_parser import URLParseError, parse_repo_url


def _qp(key: str, default: str = "") -> str:
    """Read a query parameter, returning *default* if absent."""
    return st.query_params.get(key, default)


@st.cache_resource
def _caches(ttl: float) -> tuple[TTLCache[str], TTLCache[str]]:
    # Shared across sessions so every viewer hits the same tree cache
    return TTLCache(ttl), TTLCache(ttl)


def _service(settings: Settings, token: str | None) -> TreeService:
    tree_cache, branch_cache = _caches(settings.cache_ttl)
    provider = GitHubProvider(token=token, api_base=settings.github_api_base)
    return TreeService(provider, tree_cache=tree_cache, branch_cache=branch_cache)


def main() -> None:
    st.set_page_config(page_title="gtree", page_icon="🌳", layout="wide")

    settings = Settings.from_env()

    header_left, header_right = st.columns([8, 1])
    with header_left:
        st.title("gtree")
    with header_right:
        st.markdown("<div style='height: 1.5rem'></div>", unsafe_allow_html=True)
        with st.popover("", use_container_width=True):
            st.subheader("Settings")

            saved = token_store.load() or ""
            github_token = st.text_input(
                "GitHub Token (optional)",
                value=settings.github_token or saved,
                type="password",
                help="Required for private repos. Increases rate limit from 60 to 5,000 requests/hour.",
            )

            remember = st.checkbox(
                "Save token to OS keychain",
                value=bool(saved),
            )
            if remember and github_token:
                token_store.save(github_token)
            elif not remember and saved:
                token_store.delete()

            bypass_cache = st.checkbox("Bypass cache", value=False)

    st.caption("Show the directory layout of a GitHub repository as a text tree.")

    url = st.text_input(
        "Repository URL",
        value=_qp("url"),
        placeholder="https://github.com/owner/repo",
    )

    if st.button("Render", type="primary", use_container_width=True):
        if url:
            _run(url, github_token, settings, bypass_cache)
        else:
            st.error("Please enter a repository URL.")
    elif "result" in st.session_state:
        _show_result(st.session_state["result"])


def _run(url: str, github_token: str, settings: Settings, bypass_cache: bool) -> None:
    try:
        info = parse_repo_url(url)
    except URLParseError as exc:
        st.error(f"Invalid URL: {exc}")
        return

    service = _service(settings, github_token.strip() or None)
    try:
        with st.spinner("Fetching file list..."):
            result = service.get_tree(
                info.owner, info.repo, info.branch, use_cache=not bypass_cache
            )
    except UpstreamRateLimitError as exc:
        st.error(str(exc))
        st.info("Tip: Add a GitHub token in Settings to raise your rate limit.")
        return
    except (GitHubError, InvalidRepoError) as exc:
        st.error(str(exc))
        return

    st.session_state["result"] = {
        "text": result.text,
        "filename": f"{info.owner}_{info.repo}_{result.branch.replace('/', '_')}.txt",
        "cache_hit": result.cache_hit,
    }
    _show_result(st.session_state["result"])


def _show_result(result: dict) -> None:
    if result["cache_hit"]:
        st.caption("Served from cache.")
    st.download_button(
        label="Download tree",
        data=result["text"],
        file_name=result["filename"],
        mime="text/plain",
        use_container_width=True,
    )
    st.code(result["text"], language="text")


if __name__ == "__main__":
    main()
