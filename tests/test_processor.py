import base64
import fnmatch
import socket
import struct

import pytest

from label_print_service.drivers import FileDriver, IppDriver, TcpDestination, TcpRawDriver
from label_print_service.drivers import ipp as ipp_module
from label_print_service.drivers import tcp as tcp_module
from label_print_service.errors import DeliveryError, JobNotFoundError, LabelError
from label_print_service.labels import LabelService
from label_print_service.models import JobStatus, Printer
from label_print_service.processor import PrintJobProcessor

from conftest import RecordingDriver


def _ipp_body(status):
    charset = b"attributes-charset"
    body = struct.pack(">BBHI", 1, 1, status, 1)
    body += b"\x01" + struct.pack(">BH", 0x47, len(charset)) + charset + struct.pack(">H", 5) + b"utf-8"
    if status == 0:
        name = b"job-id"
        body += b"\x02" + struct.pack(">BH", 0x21, len(name)) + name + struct.pack(">Hi", 4, 77)
    return body + b"\x03"


class _FakeHttpResponse:
    status_code = 200

    def __init__(self, content):
        self.content = content

    def iter_content(self, chunk_size=1):
        yield self.content

    def close(self):
        pass


def test_scenario_a_zpl_printer_over_tcp(jobs, printers, processor, fake_drivers):
    printer = printers.add(Printer(driver="zpl", host="10.0.0.5", port=9100))
    job = jobs.create("item", [1, 2, 3], printer_id=printer.id)

    result = processor.process(job.id)

    payload, destination = fake_drivers["tcp"].calls[0]
    assert destination == TcpDestination(host="10.0.0.5", port=9100)
    assert payload.decode().count("^XA") == 3
    assert result.status is JobStatus.DONE
    assert result.artifact_path == "tcp://fake:9100?bytes=0"
    assert fake_drivers["ipp"].calls == []

    stored = jobs.load(job.id)
    assert stored.status is JobStatus.DONE
    assert stored.finished_at is not None
    assert stored.error_code is None


def test_scenario_a_real_tcp_driver_acknowledgment(jobs, printers, storage_root, monkeypatch):
    sent = {}

    class _Sock:
        def settimeout(self, value):
            pass

        def sendall(self, data):
            sent["data"] = data

        def close(self):
            pass

    def _connect(address, timeout=None):
        sent["address"] = address
        return _Sock()

    monkeypatch.setattr(tcp_module.socket, "create_connection", _connect)
    printer = printers.add(Printer(driver="zpl", host="10.0.0.5", port=9100))
    job = jobs.create("item", [1, 2, 3], printer_id=printer.id)
    proc = PrintJobProcessor(
        jobs, printers, labels=LabelService(),
        drivers={"tcp": TcpRawDriver(), "ipp": IppDriver(), "file": FileDriver(str(storage_root))},
    )

    result = proc.process(job.id)

    assert sent["address"] == ("10.0.0.5", 9100)
    assert result.status is JobStatus.DONE
    assert result.artifact_path == f"tcp://10.0.0.5:9100?bytes={len(sent['data'])}"


def test_zpl_printer_without_port_uses_9100(jobs, printers, processor, fake_drivers):
    printer = printers.add(Printer(driver="zpl", host="10.0.0.6"))
    processor.process(jobs.create("item", [1], printer_id=printer.id).id)
    assert fake_drivers["tcp"].calls[0][1].port == 9100


def test_scenario_b_ipp_without_uri_writes_pdf(jobs, printers, processor, fake_drivers, storage_root):
    printer = printers.add(Printer(driver="ipp", config={"uri": ""}))
    job = jobs.create("item", [1], printer_id=printer.id, org_id="org-3")

    result = processor.process(job.id)

    assert result.status is JobStatus.DONE
    assert fnmatch.fnmatch(result.artifact_path, "printjobs/org-3/*.pdf")
    assert (storage_root / result.artifact_path).read_bytes().startswith(b"%PDF")
    assert fake_drivers["ipp"].calls == []


def test_scenario_c_ipp_success(jobs, printers, storage_root, monkeypatch):
    posted = {}

    def fake_post(url, data=None, headers=None, timeout=None, stream=False):
        posted["url"] = url
        posted["data"] = data
        return _FakeHttpResponse(_ipp_body(0x0000))

    monkeypatch.setattr(ipp_module.requests, "post", fake_post)
    printer = printers.add(Printer(driver="ipp", config={"uri": "ipp://printer.local/ipp/print"}))
    job = jobs.create("item", [1], printer_id=printer.id, user_name="Ana")
    proc = PrintJobProcessor(
        jobs, printers, labels=LabelService(),
        drivers={"tcp": TcpRawDriver(), "ipp": IppDriver(), "file": FileDriver(str(storage_root))},
    )

    result = proc.process(job.id)

    assert posted["url"] == "http://printer.local:631/ipp/print"
    assert b"ipp://printer.local/ipp/print" in posted["data"]
    assert f"PrintJob {job.id}".encode() in posted["data"]
    assert b"%PDF" in posted["data"]
    assert result.status is JobStatus.DONE
    assert result.artifact_path == "ipp://printer.local/ipp/print#job-id=77"


def test_scenario_c_ipp_rejected(jobs, printers, storage_root, monkeypatch):
    monkeypatch.setattr(
        ipp_module.requests, "post", lambda url, data=None, headers=None, timeout=None, stream=False: _FakeHttpResponse(_ipp_body(0x0500))
    )
    printer = printers.add(Printer(driver="ipp", config={"uri": "ipp://printer.local/ipp/print"}))
    job = jobs.create("item", [1], printer_id=printer.id)
    proc = PrintJobProcessor(
        jobs, printers, labels=LabelService(),
        drivers={"tcp": TcpRawDriver(), "ipp": IppDriver(), "file": FileDriver(str(storage_root))},
    )

    with pytest.raises(DeliveryError):
        proc.process(job.id)

    stored = jobs.load(job.id)
    assert stored.status is JobStatus.FAILED
    assert stored.error_code == "IppRejected"
    assert "0x0500" in stored.error_message
    assert stored.artifact_path is None
    assert stored.finished_at is not None


def test_ipp_driver_receives_uri_and_job_name(jobs, printers, processor, fake_drivers):
    printer = printers.add(Printer(driver="ipp", config={"uri": "ipps://lab/ipp"}))
    job = jobs.create("location", ["A1"], printer_id=printer.id)
    processor.process(job.id)

    payload, dest = fake_drivers["ipp"].calls[0]
    assert dest.uri == "ipps://lab/ipp"
    assert job.id in dest.job_name
    assert base64.b64decode(payload).startswith(b"%PDF")


def test_scenario_d_no_printer_writes_zpl(jobs, processor, storage_root):
    job = jobs.create("item", [1, 2])

    result = processor.process(job.id)

    assert result.status is JobStatus.DONE
    assert fnmatch.fnmatch(result.artifact_path, "printjobs/system/*.zpl")
    assert (storage_root / result.artifact_path).read_bytes().startswith(b"^XA")


@pytest.mark.parametrize("driver", ["escpos", None])
def test_unknown_driver_or_missing_printer_record_writes_zpl(jobs, printers, processor, driver):
    printer_id = printers.add(Printer(driver=driver)).id if driver else "missing"
    result = processor.process(jobs.create("item", [1], printer_id=printer_id).id)
    assert result.artifact_path.endswith(".zpl")


def test_scenario_e_tcp_timeout_fails_and_reraises(jobs, printers, storage_root, monkeypatch):
    def _timeout(address, timeout=None):
        raise socket.timeout("timed out")

    monkeypatch.setattr(tcp_module.socket, "create_connection", _timeout)
    printer = printers.add(Printer(driver="zpl", host="10.0.0.5"))
    job = jobs.create("item", [1], printer_id=printer.id)
    proc = PrintJobProcessor(
        jobs, printers, labels=LabelService(),
        drivers={"tcp": TcpRawDriver(timeout=0.1), "ipp": IppDriver(), "file": FileDriver(str(storage_root))},
    )

    with pytest.raises(DeliveryError) as exc:
        proc.process(job.id)
    assert isinstance(exc.value.__cause__, socket.timeout)

    stored = jobs.load(job.id)
    assert stored.status is JobStatus.FAILED
    assert stored.error_code in ("ConnectFailed", "WriteFailed")
    assert stored.started_at is not None and stored.finished_at is not None


def test_render_failure_records_class_name(jobs, processor):
    job = jobs.create("vehicle", [1])
    with pytest.raises(LabelError):
        processor.process(job.id)
    stored = jobs.load(job.id)
    assert stored.status is JobStatus.FAILED
    assert stored.error_code == "UnsupportedEntityTypeError"


def test_processing_is_committed_before_delivery(jobs, printers, storage_root):
    seen = {}

    class _StatusSpy(RecordingDriver):
        def deliver(self, payload, destination):
            seen["status"] = jobs.load(job.id).status
            return "ok"

    job = jobs.create("item", [1])
    proc = PrintJobProcessor(jobs, printers, labels=LabelService(), drivers={"file": _StatusSpy("file")})
    proc.process(job.id)
    assert seen["status"] is JobStatus.PROCESSING


def test_unknown_job_id(processor, jobs):
    with pytest.raises(JobNotFoundError):
        processor.process("nope")
    assert len(jobs) == 0


def test_done_job_is_not_reprocessed(jobs, processor, storage_root):
    job = jobs.create("item", [1])
    first = processor.process(job.id)
    again = processor.process(job.id)
    assert again.artifact_path == first.artifact_path
    assert again.attempts == 1
    assert len(list(storage_root.rglob("*.zpl"))) == 1


def test_failed_job_can_be_picked_up_again(jobs, printers, storage_root):
    flaky = RecordingDriver("file", error=DeliveryError("StorageWriteFailed", "disk full"))
    proc = PrintJobProcessor(jobs, printers, labels=LabelService(), drivers={"file": flaky})
    job = jobs.create("item", [1])

    with pytest.raises(DeliveryError):
        proc.process(job.id)
    flaky.error = None
    result = proc.process(job.id)

    assert result.status is JobStatus.DONE
    assert result.attempts == 2
    assert result.error_code is None
    assert len(flaky.calls) == 2


def test_job_left_processing_by_crashed_worker_is_recovered(jobs, processor, storage_root):
    job = jobs.create("item", [1])
    job.start()
    jobs.save(job)

    result = processor.process(job.id)

    assert result.status is JobStatus.DONE
    assert result.attempts == 2
    assert len(list(storage_root.rglob("*.zpl"))) == 1
