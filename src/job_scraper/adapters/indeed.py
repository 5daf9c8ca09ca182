"""Indeed adapter — listing URL and XPath locators.

Indeed renders its SERP client-side.  Each result is a card inside a
``slider_container`` div; clicking a card opens the job detail pane to
the right, which carries the full description and the salary/job-type
block.  Card fields (title, company, location, posting age) are read
from the card itself, detail fields from the document.
"""

from __future__ import annotations

from job_scraper.adapters.base import JobSourceAdapter, SourceLocators
from job_scraper.adapters.registry import AdapterRegistry

_BASE_URL = "https://www.indeed.com/jobs"

_LOCATORS = SourceLocators(
    entries="//div[contains(@data-testid, 'slider_container')]",
    card_title=".//a[contains(@class, 'jcs-JobTitle')]",
    card_company=".//span[contains(@data-testid, 'company-name')]",
    card_location=".//div[contains(@data-testid, 'text-location')]",
    card_posted_age=".//span[contains(@data-testid, 'myJobsStateDate')]",
    detail_marker="//div[contains(@class, 'jobsearch-JobComponent')]",
    page_description="//div[contains(@id, 'jobDescriptionText')]",
    page_salary_container="//div[contains(@id, 'salaryInfoAndJobType')]",
    salary_text=".//span",
)


@AdapterRegistry.register
class IndeedAdapter(JobSourceAdapter):
    """Locator set for Indeed's JavaScript-rendered search results."""

    @property
    def source_name(self) -> str:
        return "indeed"

    @property
    def base_url(self) -> str:
        return _BASE_URL

    @property
    def locators(self) -> SourceLocators:
        return _LOCATORS
