"""
Report text helpers for tests.
"""

from datetime import datetime
from pathlib import Path

import yaml

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "reports"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def simple_report_yaml(host: str, time: datetime, kind: str = "apply", failed: int = 0, changes: int = 0) -> str:
    """A metrics-only report; status follows the failed/changes counts."""
    return yaml.safe_dump({
        "host": host,
        "time": time,
        "kind": kind,
        "metrics": {
            "resources": {"total": 1, "failed": failed},
            "changes": {"total": changes},
        },
    })


def inspect_report_yaml(time: str, file_ensure: str, file_content=None, resource_name: str = "/tmp/foo") -> str:
    """An agent-serialized inspect report auditing one file."""
    text = f"""--- !ruby/object:Puppet::Transaction::Report
  report_format: 2
  host: mattmac.puppetlabs.lan
  kind: inspect
  logs: []
  metrics: {{}}
  resource_statuses:
    "File[{resource_name}]": !ruby/object:Puppet::Resource::Status
      evaluation_time: 0.000868
      file: &id001 /Users/matthewrobinson/work/puppet/test_data/genreportm/manifests/site.pp
      line: 5
      resource_type: File
      title: {resource_name}
      source_description: "/Stage[main]//Node[default]/File[{resource_name}]"
      tags:
        - &id002 file
        - node
        - default
        - &id003 class
      time: 2010-07-22 14:42:39.654436 -04:00
      events:
        - !ruby/object:Puppet::Transaction::Event
          default_log_level: !ruby/sym notice
          file: *id001
          line: 5
          message: inspected value is :{file_ensure}
          previous_value: !ruby/sym {file_ensure}
          property: ensure
          resource: "File[{resource_name}]"
          status: audit
          tags:
            - *id002
            - *id003
          time: 2010-12-03 12:18:40.039434 -08:00
"""
    if file_content:
        text += f"""        - !ruby/object:Puppet::Transaction::Event
          default_log_level: !ruby/sym notice
          file: *id001
          line: 5
          message: "inspected value is \\"{{md5}}{file_content}\\""
          previous_value: "{{md5}}{file_content}"
          property: content
          resource: "File[{resource_name}]"
          status: audit
          tags:
            - *id002
            - *id003
          time: 2010-12-03 12:08:59.061376 -08:00
"""
    text += f"  time: {time}\n"
    return text


# A format 1 report whose event value contains itself through a YAML alias
SELF_REFERENTIAL_REPORT = """\
host: loop.example.com
time: 2011-01-01 12:00:00
report_format: 1
resource_statuses:
  "File[/tmp/loop]":
    resource_type: File
    title: /tmp/loop
    events:
      - property: content
        status: success
        previous_value: &loop [*loop]
        desired_value: new
"""
