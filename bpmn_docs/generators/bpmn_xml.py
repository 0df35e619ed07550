"""BPMN 2.0 XML helpers.

initial_diagram   starter Start -> Task -> End diagram inside one pool/lane
apply_metadata    write process name / description into an existing diagram
extract_metadata  best-effort reverse: names, documentation, lanes, tasks
"""

import logging
import xml.etree.ElementTree as ET

from bpmn_docs.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

NS = {
    "bpmn": "http://www.omg.org/spec/BPMN/20100524/MODEL",
    "bpmndi": "http://www.omg.org/spec/BPMN/20100524/DI",
    "dc": "http://www.omg.org/spec/DD/20100524/DC",
    "di": "http://www.omg.org/spec/DD/20100524/DI",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}
for _prefix, _uri in NS.items():
    ET.register_namespace(_prefix, _uri)

TASK_TAGS = (
    "task", "userTask", "serviceTask", "manualTask", "scriptTask",
    "businessRuleTask", "sendTask", "receiveTask", "subProcess", "callActivity",
)

DEFAULT_PROCESS_NAME = "Process Name"
DEFAULT_LANE_NAME = "Actor"

_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
                  xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL"
                  xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI"
                  xmlns:dc="http://www.omg.org/spec/DD/20100524/DC"
                  xmlns:di="http://www.omg.org/spec/DD/20100524/DI"
                  id="Definitions_1"
                  targetNamespace="http://bpmn.io/schema/bpmn">
  <bpmn:collaboration id="Collaboration_1">
    <bpmn:participant id="Participant_1" name="" processRef="Process_1" />
  </bpmn:collaboration>
  <bpmn:process id="Process_1" isExecutable="false">
    <bpmn:laneSet id="LaneSet_1">
      <bpmn:lane id="Lane_1" name="">
        <bpmn:flowNodeRef>StartEvent_1</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Activity_1</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>EndEvent_1</bpmn:flowNodeRef>
      </bpmn:lane>
    </bpmn:laneSet>
    <bpmn:startEvent id="StartEvent_1" name="Start">
      <bpmn:outgoing>Flow_1</bpmn:outgoing>
    </bpmn:startEvent>
    <bpmn:task id="Activity_1" name="Task">
      <bpmn:incoming>Flow_1</bpmn:incoming>
      <bpmn:outgoing>Flow_2</bpmn:outgoing>
    </bpmn:task>
    <bpmn:endEvent id="EndEvent_1" name="End">
      <bpmn:incoming>Flow_2</bpmn:incoming>
    </bpmn:endEvent>
    <bpmn:sequenceFlow id="Flow_1" sourceRef="StartEvent_1" targetRef="Activity_1" />
    <bpmn:sequenceFlow id="Flow_2" sourceRef="Activity_1" targetRef="EndEvent_1" />
  </bpmn:process>
  <bpmndi:BPMNDiagram id="BPMNDiagram_1">
    <bpmndi:BPMNPlane id="BPMNPlane_1" bpmnElement="Collaboration_1">
      <bpmndi:BPMNShape id="Participant_1_di" bpmnElement="Participant_1" isHorizontal="true">
        <dc:Bounds x="120" y="60" width="600" height="180" />
        <bpmndi:BPMNLabel />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="Lane_1_di" bpmnElement="Lane_1" isHorizontal="true">
        <dc:Bounds x="150" y="60" width="570" height="180" />
        <bpmndi:BPMNLabel />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="StartEvent_1_di" bpmnElement="StartEvent_1">
        <dc:Bounds x="200" y="120" width="36" height="36" />
        <bpmndi:BPMNLabel>
          <dc:Bounds x="200" y="160" width="27" height="14" />
        </bpmndi:BPMNLabel>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="Activity_1_di" bpmnElement="Activity_1">
        <dc:Bounds x="300" y="100" width="100" height="80" />
        <bpmndi:BPMNLabel />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="EndEvent_1_di" bpmnElement="EndEvent_1">
        <dc:Bounds x="450" y="120" width="36" height="36" />
        <bpmndi:BPMNLabel>
          <dc:Bounds x="450" y="160" width="27" height="14" />
        </bpmndi:BPMNLabel>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNEdge id="Flow_1_di" bpmnElement="Flow_1">
        <di:waypoint x="236" y="138" />
        <di:waypoint x="300" y="138" />
      </bpmndi:BPMNEdge>
      <bpmndi:BPMNEdge id="Flow_2_di" bpmnElement="Flow_2">
        <di:waypoint x="400" y="138" />
        <di:waypoint x="450" y="138" />
      </bpmndi:BPMNEdge>
    </bpmndi:BPMNPlane>
  </bpmndi:BPMNDiagram>
</bpmn:definitions>
"""


def _q(prefix, tag):
    return f"{{{NS[prefix]}}}{tag}"


def _parse(xml):
    if not xml or not isinstance(xml, str):
        raise ValidationError("BPMN XML is required")
    try:
        # ET.fromstring rejects str input that carries an encoding declaration
        return ET.fromstring(xml.encode("utf-8"))
    except ET.ParseError as exc:
        raise ValidationError(f"Invalid BPMN XML: {exc}") from exc


def _serialize(root):
    # encoding="unicode" would declare the locale encoding; the payload is UTF-8
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def initial_diagram(process_name=None, lane_name=None):
    """Starter diagram with the pool named after the process."""
    root = ET.fromstring(_TEMPLATE.encode("utf-8"))
    root.find(".//bpmn:participant", NS).set("name", process_name or DEFAULT_PROCESS_NAME)
    root.find(".//bpmn:lane", NS).set("name", lane_name or DEFAULT_LANE_NAME)
    if process_name:
        root.find("bpmn:process", NS).set("name", process_name)
    return _serialize(root)


def _set_documentation(process, text):
    doc = process.find("bpmn:documentation", NS)
    if not text:
        if doc is not None:
            process.remove(doc)
        return
    if doc is None:
        # documentation must be the first child of a BPMN element
        doc = ET.Element(_q("bpmn", "documentation"))
        process.insert(0, doc)
    doc.text = text


def apply_metadata(xml, metadata):
    """Write ``processName`` and ``description`` into the first process.

    The participant referencing that process is renamed as well. A
    ``laneName`` renames the first lane. Missing keys leave the diagram as is.
    """
    root = _parse(xml)
    metadata = metadata or {}
    process = root.find("bpmn:process", NS)
    if process is None:
        raise ValidationError("BPMN XML has no process element")

    name = metadata.get("processName")
    if name:
        process.set("name", name)
        for participant in root.iter(_q("bpmn", "participant")):
            if participant.get("processRef") == process.get("id"):
                participant.set("name", name)

    if "description" in metadata:
        _set_documentation(process, metadata.get("description") or "")

    lane_name = metadata.get("laneName")
    if lane_name:
        lane = process.find(".//bpmn:lane", NS)
        if lane is not None:
            lane.set("name", lane_name)

    return _serialize(root)


def extract_metadata(xml):
    """Read back what the editor and ``apply_metadata`` put into a diagram."""
    root = _parse(xml)
    process = root.find("bpmn:process", NS)
    participant = root.find(".//bpmn:participant", NS)

    process_name = ""
    if process is not None and process.get("name"):
        process_name = process.get("name")
    elif participant is not None:
        process_name = participant.get("name") or ""

    description = ""
    if process is not None:
        doc = process.find("bpmn:documentation", NS)
        if doc is not None and doc.text:
            description = doc.text.strip()

    lanes = [lane.get("name") or "" for lane in root.iter(_q("bpmn", "lane"))]
    tasks = []
    for tag in TASK_TAGS:
        for el in root.iter(_q("bpmn", tag)):
            tasks.append({"id": el.get("id"), "type": tag, "name": el.get("name") or ""})

    return {
        "processName": process_name,
        "description": description,
        "lanes": lanes,
        "tasks": tasks,
        "startEvents": len(list(root.iter(_q("bpmn", "startEvent")))),
        "endEvents": len(list(root.iter(_q("bpmn", "endEvent")))),
    }
