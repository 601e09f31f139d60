"""
Tests for the Prospeo contact finder.
Covers: seniority ranking, the per-domain enrichment cap, per-candidate
failure tolerance, and RunSummary accounting (including NO_MATCH refunds).
Run with: python -m pytest tests/test_contact_finder.py -v
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enrichment.contact_finder import (
    ContactFinder,
    RunSummary,
    ENRICH_PERSON_URL,
    SEARCH_PERSON_URL,
    MAX_ENRICH_PER_DOMAIN,
    rank_candidates,
    seniority_rank,
)
from http_fakes import FakeResponse, FakeSession


def person(name, title, first=None, last=None):
    p = {"current_job_title": title}
    if name is not None:
        p["full_name"] = name
    if first is not None:
        p["first_name"] = first
    if last is not None:
        p["last_name"] = last
    return {"person": p, "company": {"domain": "acme.com"}}


def prospeo_handler(people, emails_by_name, search_status=200):
    """Search returns ``people``; enrich returns the mapped email or NO_MATCH."""

    def handler(method, url, kwargs):
        if url == SEARCH_PERSON_URL:
            if search_status != 200:
                return FakeResponse(search_status, text="server error")
            return FakeResponse(200, {"error": False, "results": people})
        name = kwargs["json"]["data"]["full_name"]
        result = emails_by_name.get(name)
        if isinstance(result, Exception):
            return result
        if result:
            return FakeResponse(200, {"error": False, "person": {"email": result}})
        return FakeResponse(200, {"error": True, "error_code": "NO_MATCH"})

    return handler


def find(handler, domain="acme.com", summary=None):
    session = FakeSession(handler)
    summary = summary or RunSummary()
    finder = ContactFinder("test-key", enrich_delay=0)

    async def run():
        return await finder.find_emails(session, domain, summary)

    return asyncio.run(run()), summary, session


def enrich_calls(session):
    return [kw["json"]["data"]["full_name"] for m, url, kw in session.calls if url == ENRICH_PERSON_URL]


# ──────────────────────────────────────────────────
#  Seniority ranking
# ──────────────────────────────────────────────────

class TestSeniorityRank:
    def test_tier_order(self):
        assert seniority_rank("Owner") == 0
        assert seniority_rank("Co-Founder & Master Plumber") == 0
        assert seniority_rank("CEO") == 1
        assert seniority_rank("Chief Operating Officer") == 1
        assert seniority_rank("President") == 1
        assert seniority_rank("Vice President of Sales") == 2
        assert seniority_rank("VP Operations") == 2
        assert seniority_rank("Director of Service") == 3
        assert seniority_rank("Office Manager") == 4

    def test_unmatched_ranks_last(self):
        assert seniority_rank("Technician") == 5
        assert seniority_rank("") == 5
        assert seniority_rank(None) == 5

    def test_rank_candidates_is_stable(self):
        people = [
            person("Tech One", "Technician"),
            person("Mgr A", "Manager"),
            person("Boss", "Owner"),
            person("Mgr B", "Service Manager"),
        ]
        ranked = [p["person"]["full_name"] for p in rank_candidates(people)]
        assert ranked == ["Boss", "Mgr A", "Mgr B", "Tech One"]


# ──────────────────────────────────────────────────
#  find_emails
# ──────────────────────────────────────────────────

class TestFindEmails:
    def test_three_candidates_at_most_two_attempted(self):
        people = [
            person("Terry Tech", "Technician"),
            person("Olivia Owner", "Owner"),
            person("Carl Ceo", "CEO"),
        ]
        results, summary, session = find(prospeo_handler(people, {"Olivia Owner": "Olivia@Acme.com"}))

        assert enrich_calls(session) == ["Olivia Owner", "Carl Ceo"]
        assert len(enrich_calls(session)) <= MAX_ENRICH_PER_DOMAIN
        assert [r.email for r in results] == ["olivia@acme.com"]
        assert results[0].job_title == "Owner"
        assert summary.enrich_attempts == 2
        assert summary.verified_emails == 1
        assert summary.contacts_found == 3
        assert summary.businesses_processed == 1

    def test_search_is_scoped_to_domain_and_seniority(self):
        _, _, session = find(prospeo_handler([], {}))
        method, url, kwargs = session.calls[0]
        assert url == SEARCH_PERSON_URL
        assert kwargs["headers"]["X-KEY"] == "test-key"
        filters = kwargs["json"]["filters"]
        assert filters["company"]["websites"]["include"] == ["acme.com"]
        assert "Founder/Owner" in filters["person_seniority"]["include"]

    def test_credits_refunded_on_no_match(self):
        people = [person("A Owner", "Owner"), person("B Ceo", "CEO")]
        _, summary, _ = find(prospeo_handler(people, {"A Owner": "a@acme.com"}))
        # search (1) + two enrich attempts (2) - one NO_MATCH refund (1)
        assert summary.estimated_credits == 2

    def test_search_no_match_costs_nothing(self):
        def handler(method, url, kwargs):
            return FakeResponse(200, {"error": True, "error_code": "NO_MATCH"})

        results, summary, session = find(handler)
        assert results == []
        assert summary.estimated_credits == 0
        assert summary.enrich_attempts == 0
        assert len(session.calls) == 1

    def test_search_http_failure_keeps_credit(self):
        results, summary, _ = find(prospeo_handler([], {}, search_status=500))
        assert results == []
        assert summary.estimated_credits == 1
        assert summary.businesses_processed == 1

    def test_search_exception_returns_empty(self):
        results, summary, _ = find(lambda m, u, kw: ConnectionError("dns failure"))
        assert results == []
        assert summary.businesses_processed == 1

    def test_nameless_candidate_skipped_without_attempt(self):
        people = [person(None, "Owner"), person("Carl Ceo", "CEO")]
        results, summary, session = find(prospeo_handler(people, {"Carl Ceo": "carl@acme.com"}))
        assert enrich_calls(session) == ["Carl Ceo"]
        assert summary.enrich_attempts == 1
        assert [r.email for r in results] == ["carl@acme.com"]

    def test_name_built_from_parts(self):
        people = [person(None, "Owner", first="Dana", last="Diaz")]
        _, _, session = find(prospeo_handler(people, {}))
        assert enrich_calls(session) == ["Dana Diaz"]

    def test_enrich_exception_skips_candidate(self):
        people = [person("A Owner", "Owner"), person("B Ceo", "CEO")]
        results, summary, _ = find(prospeo_handler(people, {
            "A Owner": TimeoutError("slow"),
            "B Ceo": "b@acme.com",
        }))
        assert [r.email for r in results] == ["b@acme.com"]
        assert summary.enrich_attempts == 2
        # exceptions are billed conservatively, NO_MATCH is not involved
        assert summary.estimated_credits == 3

    def test_non_object_enrich_body_skips_only_that_candidate(self):
        people = [person("Ann Owner", "Owner"), person("Bob Ceo", "CEO")]

        def handler(method, url, kwargs):
            if url == SEARCH_PERSON_URL:
                return FakeResponse(200, {"error": False, "results": people})
            if kwargs["json"]["data"]["full_name"] == "Ann Owner":
                return FakeResponse(200, {"person": {"email": "ann@acme.com"}})
            return FakeResponse(200, None)

        results, summary, _ = find(handler)
        assert [r.email for r in results] == ["ann@acme.com"]
        assert summary.enrich_attempts == 2

    def test_malformed_enrich_bodies_return_nothing(self):
        people = [person("Ann Owner", "Owner"), person("Bob Ceo", "CEO")]
        bodies = {"Ann Owner": ["not", "an", "object"], "Bob Ceo": {"person": "bob@acme.com"}}

        def handler(method, url, kwargs):
            if url == SEARCH_PERSON_URL:
                return FakeResponse(200, {"error": False, "results": people})
            return FakeResponse(200, bodies[kwargs["json"]["data"]["full_name"]])

        results, summary, _ = find(handler)
        assert results == []
        assert summary.enrich_attempts == 2

    def test_non_object_search_body_returns_empty(self):
        for body in (None, [], {"error": False, "results": "oops"}):
            results, summary, session = find(lambda m, u, kw, body=body: FakeResponse(200, body))
            assert results == []
            assert summary.enrich_attempts == 0
            assert len(session.calls) == 1

    def test_summary_accumulates_across_domains(self):
        summary = RunSummary()
        people = [person("A Owner", "Owner")]
        find(prospeo_handler(people, {"A Owner": "a@acme.com"}), summary=summary)
        find(prospeo_handler(people, {"A Owner": "a@beta.com"}), domain="beta.com", summary=summary)
        assert summary.businesses_processed == 2
        assert summary.enrich_attempts == 2
        assert summary.verified_emails == 2
