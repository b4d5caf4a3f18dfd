"""
reports.py - Report Generation Module
======================================
Turns an aggregated profile and resolved names into sorted reports.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from jinja2 import Template

from config import Config
from models import AggregateKey, Profile, ReportEntry


logger = logging.getLogger(__name__)


def sorted_entries(profile: Profile) -> List[Tuple[AggregateKey, int]]:
    """(key, duration) pairs by descending duration, ties by ascending key."""
    return sorted(profile.durations.items(), key=lambda item: (-item[1], item[0]))


def module_label(module_index: int, modules: Mapping[int, str]) -> str:
    if module_index in modules:
        return modules[module_index]
    return Config.NAMES['unknown_module'].format(index=module_index)


def function_label(key: AggregateKey, names: Mapping[AggregateKey, str]) -> str:
    if key in names:
        return names[key]
    return Config.NAMES['unknown_function'].format(index=key.func_index)


def build_entries(profile: Profile, modules: Mapping[int, str],
                  names: Mapping[AggregateKey, str]) -> List[ReportEntry]:
    """Resolve labels and percentages for every bucket of ``profile``.

    An empty profile yields no entries. A profile whose samples all took
    0us reports every entry at 0%.
    """
    if profile.is_empty:
        return []

    total = profile.total_us
    entries = []

    for key, duration in sorted_entries(profile):
        percent = duration * 100 // total if total else 0
        entries.append(ReportEntry(
            key=key,
            module_label=module_label(key.module_index, modules),
            function_label=function_label(key, names),
            duration_us=duration,
            percent=percent
        ))

    return entries


def format_entry(entry: ReportEntry, multi_module: bool = True) -> str:
    if multi_module:
        label = f"{entry.module_label}:{entry.function_label}"
    else:
        label = entry.function_label
    return f"Function {label} took {entry.duration_us}us ({entry.percent}%)"


def render_report(profile: Profile, modules: Mapping[int, str],
                  names: Mapping[AggregateKey, str]) -> str:
    """Render the plain text report. Every line ends with a newline."""
    lines = [f"Total time taken {profile.total_us}us"]

    for entry in build_entries(profile, modules, names):
        lines.append(format_entry(entry, profile.multi_module))

    return "\n".join(lines) + "\n"


FORMAT_ALIASES = {'htm': 'html'}


HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{{ title }} - {{ source }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 40px; background-color: #f5f5f5; }
        .header { background-color: #2c3e50; color: white; padding: 20px; border-radius: 5px; }
        .section { background-color: white; margin: 20px 0; padding: 20px; border-radius: 5px; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th { background-color: #34495e; color: white; padding: 10px; text-align: left; }
        td { padding: 8px; border-bottom: 1px solid #ecf0f1; }
        .bar { height: 12px; background-color: #3498db; }
    </style>
</head>
<body>
    <div class="header">
        <h1>{{ title }}</h1>
        <p>{{ source }} | Generated: {{ timestamp }}</p>
    </div>
    <div class="section">
        <h2>Total time taken {{ total_us }}us</h2>
        {% if entries %}
        <table>
            <thead>
                <tr>
                    {% if multi_module %}<th>Module</th>{% endif %}
                    <th>Function</th>
                    <th>Duration (us)</th>
                    <th>Share</th>
                </tr>
            </thead>
            <tbody>
                {% for entry in entries %}
                <tr>
                    {% if multi_module %}<td>{{ entry.module }}</td>{% endif %}
                    <td>{{ entry.function }}</td>
                    <td>{{ entry.duration_us }}</td>
                    <td>{{ entry.percent }}%<div class="bar" style="width: {{ entry.percent }}%"></div></td>
                </tr>
                {% endfor %}
            </tbody>
        </table>
        {% else %}
        <p>No samples recorded.</p>
        {% endif %}
    </div>
</body>
</html>
"""


class ReportGenerator:
    """Generates profile reports in various formats."""

    def __init__(self, profile: Profile, modules: Mapping[int, str],
                 names: Mapping[AggregateKey, str], source: str = "profile"):
        self.profile = profile
        self.modules = modules
        self.names = names
        self.source = source
        self.config = Config.REPORTING

        self.entries = build_entries(profile, modules, names)

    def _report_data(self) -> Dict:
        return {
            'timestamp': datetime.now().strftime(self.config['date_format']),
            'source': self.source,
            'total_us': self.profile.total_us,
            'multi_module': self.profile.multi_module,
            'entries': [entry.to_dict() for entry in self.entries]
        }

    def generate_text_report(self, output_path: Optional[str] = None) -> str:
        """Generate text report."""
        logger.info("Generating text report")
        report_text = render_report(self.profile, self.modules, self.names)

        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(report_text)
            logger.info(f"Text report saved to {output_path}")

        return report_text

    def generate_json_report(self, output_path: Optional[str] = None) -> Dict:
        """Generate JSON report."""
        logger.info("Generating JSON report")
        data = self._report_data()

        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            logger.info(f"JSON report saved to {output_path}")

        return data

    def generate_csv_report(self, output_path: Optional[str] = None) -> List[Dict]:
        """Generate CSV report with one row per function."""
        logger.info("Generating CSV report")
        rows = [entry.to_dict() for entry in self.entries]

        if output_path:
            fieldnames = ['module_index', 'func_index', 'module', 'function',
                          'duration_us', 'percent']
            with open(output_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)
            logger.info(f"CSV report saved to {output_path}")

        return rows

    def generate_html_report(self, output_path: Optional[str] = None) -> str:
        """Generate HTML report."""
        logger.info("Generating HTML report")

        template = Template(HTML_TEMPLATE, autoescape=True)
        html_content = template.render(title=self.config['html_title'],
                                       **self._report_data())

        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(html_content)
            logger.info(f"HTML report saved to {output_path}")

        return html_content

    def save_report(self, output_path: str) -> str:
        """Write a report whose format follows the file extension.

        Extensions outside ``REPORTING['formats']`` get the default format.
        Returns the format written.
        """
        generators = {
            'txt': self.generate_text_report,
            'json': self.generate_json_report,
            'csv': self.generate_csv_report,
            'html': self.generate_html_report,
        }

        report_format = Path(output_path).suffix.lower().lstrip('.')
        report_format = FORMAT_ALIASES.get(report_format, report_format)
        if report_format not in self.config['formats'] or report_format not in generators:
            logger.debug(f"No report format for '{output_path}', "
                         f"using {self.config['default_format']}")
            report_format = self.config['default_format']

        generators[report_format](output_path)
        return report_format
