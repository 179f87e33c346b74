"""Scraper for the Kraland world events feed."""
import copy
import logging
import re
import time
from typing import List, Optional, Tuple
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from processor.models import RawRecord, ScrapedPage

logger = logging.getLogger(__name__)


DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_RE = re.compile(r'^\d{2}:\d{2}$')


class KralandFeedScraper:
    """Scraper for the paginated Kraland events table."""

    BASE_URL = "http://www.kraland.org/monde/evenements"

    HEADERS = {
        'User-Agent': (
            'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
            '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
        ),
        'Accept-Language': 'fr-FR,fr;q=0.9'
    }

    def __init__(self, timeout: int = 30, session: Optional[requests.Session] = None):
        """
        Initialize the feed scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_page(self, url: str) -> ScrapedPage:
        """
        Fetch and parse one page of the events feed.

        Args:
            url: Absolute page URL

        Returns:
            ScrapedPage with the raw rows and the next page URL, if any
        """
        html_content = self._fetch_html(url)
        page = self.parse_page(html_content, base_url=url)
        logger.info(f"Parsed {len(page.records)} rows from {url}")
        return page

    def _fetch_html(self, url: str) -> str:
        """
        Fetch page HTML with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        max_retries = 3
        base_delay = 1  # seconds

        for attempt in range(max_retries):
            try:
                logger.info(f"Fetching feed page (attempt {attempt + 1}/{max_retries})")
                response = self.session.get(
                    url,
                    headers=self.HEADERS,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def parse_page(self, html_content: str, base_url: Optional[str] = None) -> ScrapedPage:
        """
        Parse feed rows and the pagination link from page HTML.

        A one-cell date row sets the date for the rows below it. The empire
        flag carries over to following rows; province and city do not.
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        records: List[RawRecord] = []

        current_date = None
        current_empire = None

        for tr in soup.select('table.table tbody tr'):
            row_text = tr.get_text().strip()
            if DATE_RE.match(row_text):
                current_date = row_text
                continue

            tds = tr.find_all('td')
            if not tds or not current_date:
                continue

            img = tds[0].find('img')
            if img is not None and img.get('src'):
                current_empire = self._empire_code(img['src'])

            province, city = self._parse_location(tds[0])

            time_text = tds[1].get_text().strip() if len(tds) > 1 else ''
            text_cell = tr.select_one('td[id^="ajax-"]')
            text = text_cell.get_text().strip() if text_cell is not None else ''

            if not TIME_RE.match(time_text) or not text:
                continue

            records.append(RawRecord(
                date=current_date,
                time=time_text,
                empire=current_empire or '',
                province=province,
                city=city,
                text=text,
                id=text_cell.get('id')
            ))

        return ScrapedPage(records=records, next_url=self._next_page_url(soup, base_url))

    def _parse_location(self, cell) -> Tuple[str, str]:
        """
        Split the location cell into province (own text) and city (<p> text).
        """
        city_elem = cell.find('p')
        city = city_elem.get_text().strip() if city_elem is not None else ''

        province_cell = copy.copy(cell)
        for child in province_cell.find_all(['p', 'img']):
            child.decompose()
        province = province_cell.get_text().replace('\u00a0', ' ').strip()

        return province, city

    def _empire_code(self, src: str) -> str:
        name = src.rsplit('/', 1)[-1]
        return name[:-4] if name.endswith('.png') else name

    def _next_page_url(self, soup: BeautifulSoup, base_url: Optional[str]) -> Optional[str]:
        active = soup.select_one('.pagination li.active')
        if active is None:
            return None
        next_item = active.find_next_sibling('li')
        if next_item is None:
            return None
        link = next_item.find('a')
        if link is None or not link.get('href'):
            return None
        return urljoin(base_url or self.BASE_URL, link['href'])
