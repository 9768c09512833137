from calendar import day_name
from collections import defaultdict
from datetime import date, timedelta

from timeline.models import CommitRecord


class MetricsCalculator:
    """Year-in-review numbers for one repository. All inputs are CommitRecord lists."""

    @staticmethod
    def filter_year(commits, year: int):
        return [c for c in commits if c.timestamp is not None and c.timestamp.year == year]

    @staticmethod
    def summarize(commits):
        added = sum(c.lines_added for c in commits)
        removed = sum(c.lines_removed for c in commits)
        return {
            "total_commits": len(commits),
            "total_contributors": len({c.author for c in commits}),
            "lines_added": added,
            "lines_removed": removed,
            "net_lines": added - removed,
        }

    @staticmethod
    def top_contributors(commits, limit: int = 10):
        # dicts keep first-seen order, which breaks ties below
        contributors = {}
        for c in commits:
            entry = contributors.setdefault(c.author, {"name": c.author, "commits": 0, "added": 0, "removed": 0})
            entry["commits"] += 1
            entry["added"] += c.lines_added
            entry["removed"] += c.lines_removed

        ranked = sorted(contributors.values(), key=lambda e: e["commits"], reverse=True)
        return ranked[:limit]

    @staticmethod
    def biggest_commits(commits, limit: int = 5) -> list[CommitRecord]:
        return sorted(commits, key=lambda c: c.net_lines, reverse=True)[:limit]

    @staticmethod
    def smallest_commits(commits, limit: int = 5) -> list[CommitRecord]:
        """Commits that removed more than they added, most negative first."""
        shrinking = [c for c in commits if c.net_lines < 0]
        return sorted(shrinking, key=lambda c: c.net_lines)[:limit]

    @staticmethod
    def busiest_week(commits):
        """
        Monday-to-Sunday week with the most commits, plus a per-weekday breakdown.

        Ties go to the earliest week. Weekdays are sorted by count, busiest
        first, and all seven are always present.
        """
        weeks = defaultdict(list)
        for c in commits:
            if c.timestamp is None:
                continue
            day = c.timestamp.date()
            weeks[day - timedelta(days=day.weekday())].append(c)

        if not weeks:
            return None

        week_start = max(sorted(weeks), key=lambda start: len(weeks[start]))
        week_commits = weeks[week_start]

        per_day = [0] * 7
        for c in week_commits:
            per_day[c.timestamp.weekday()] += 1

        days = [{"day": day_name[i], "count": per_day[i]} for i in range(7)]
        days.sort(key=lambda d: d["count"], reverse=True)

        return {
            "week_start": week_start,
            "total_commits": len(week_commits),
            "days": days,
        }

    @staticmethod
    def commit_grid(commits, year: int):
        """Commit count for every day of `year`, zero-filled."""
        counts = defaultdict(int)
        for c in commits:
            if c.timestamp is not None and c.timestamp.year == year:
                counts[c.timestamp.date()] += 1

        days = []
        current = date(year, 1, 1)
        while current.year == year:
            days.append({"day": current, "count": counts[current]})
            current += timedelta(days=1)

        return {
            "days": days,
            "max_commits_in_a_day": max(counts.values(), default=0),
        }

    @staticmethod
    def longest_streak(days) -> int:
        """Longest run of consecutive grid days with at least one commit."""
        longest = current = 0
        for day in days:
            if day["count"] > 0:
                current += 1
                longest = max(longest, current)
            else:
                current = 0
        return longest

    @staticmethod
    def lines_histogram(commits, points: int = 12) -> list[int]:
        """
        Cumulative net lines sampled at `points` evenly spaced commits.

        Oldest commit first; slots past the last sample repeat the final total.
        """
        if points <= 0:
            return []

        dated = sorted((c for c in commits if c.timestamp is not None), key=lambda c: c.timestamp)
        if not dated:
            return [0] * points

        per_slot = max(len(dated) // points, 1)
        histogram = []
        total = 0
        for i, c in enumerate(dated):
            total += c.net_lines
            if (i + 1) % per_slot == 0 and len(histogram) < points:
                histogram.append(total)

        histogram.extend([total] * (points - len(histogram)))
        return histogram

    @staticmethod
    def top_pull_requests(pull_requests, limit: int = 5):
        """Trim the upstream GitHub search result to what the recap shows."""
        if not pull_requests:
            return []

        trimmed = []
        for item in (pull_requests.get("items") or [])[:limit]:
            user = item.get("user") or {}
            reactions = item.get("reactions") or {}
            merged_at = (item.get("pull_request") or {}).get("merged_at")
            trimmed.append({
                "number": item.get("number", 0),
                "title": item.get("title", ""),
                "author": user.get("login", ""),
                "created_at": item.get("created_at"),
                "state": item.get("state", ""),
                "url": item.get("html_url", ""),
                "comments": item.get("comments", 0),
                "reactions": reactions.get("total_count", 0),
                "merged": merged_at is not None,
            })
        return trimmed
