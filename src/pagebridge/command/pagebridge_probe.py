# pagebridge/command/pagebridge_probe.py

import asyncio
import base64
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from pagebridge.errors import ElementNotFoundError, PageBridgeError
from pagebridge.locators import FIRST_MATCH


async def _probe(url, selector, index, wait_until, headed, screenshot, logger):
    from playwright.async_api import async_playwright

    from pagebridge.playwright_host import attach

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=not headed)
        try:
            context = await browser.new_context()
            page = await attach(await context.new_page())
            await page.goto(url, wait_until=wait_until)
            logger.info(f"Loaded {await page.url()}")

            if selector:
                await page.wait_for_selector(selector, index)
                element = await page.get_element(selector, index)
                if element is None:
                    raise ElementNotFoundError("probe", selector, index)
                click.echo(f"<{(await element.get_tag_name()).lower()}> {element.path}")
                click.echo(await element.get_text())

            if screenshot:
                data_url = await page.screenshot()
                encoded = data_url.split(",", 1)[1]
                Path(screenshot).write_bytes(base64.b64decode(encoded))
                logger.info(f"Screenshot written to {screenshot}")
        finally:
            await browser.close()


@click.command(name="pagebridge-probe")
@click.argument("url")
@click.option("--selector", "-s", default=None, help="CSS selector or XPath to wait for and print.")
@click.option("--index", "-i", default=FIRST_MATCH, show_default=True, help="Match index; -1 is the first match.")
@click.option(
    "--wait-until",
    type=click.Choice(["domcontentloaded", "load"]),
    default="domcontentloaded",
    show_default=True,
    help="Load state goto waits for.",
)
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.option(
    "--screenshot",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write a PNG screenshot of the viewport to this path.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
def run(url, selector, index, wait_until, headed, screenshot, verbose):
    """
    Opens URL in Chromium through pagebridge and reports on an element.
    """
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("pagebridge.probe")

    try:
        asyncio.run(_probe(url, selector, index, wait_until, headed, screenshot, logger))
    except PageBridgeError as e:
        logger.error(f"Probe failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
