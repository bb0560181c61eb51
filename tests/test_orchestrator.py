"""Tests for the tiered extraction orchestrator."""

import asyncio

import pytest

from conftest import FakeOCREngine, FakeVisionService, vision_reply
from agrilab.input_handler import ExtractionRequest, SampleMetadata
from agrilab.model_inference.extraction_result import AnalysisType, ExtractedParameter, TierUsed
from agrilab.model_inference.vision_extractor import VisionExtractor
from agrilab.pipeline import ExtractionOrchestrator, ExtractionSettings
from agrilab.postprocessor.normalizers import ResultNormalizer
from agrilab.utils.exceptions import UnsupportedInputError

SOIL_REPLY = vision_reply(
    {
        "pH": {"value": 5.6, "unit": "", "confidence": 0.95},
        "Nitrogen": {"value": "0.15", "unit": "%", "confidence": 0.9},
        "P": {"value": 250, "unit": "ppm", "confidence": 0.9},
    },
    analysis_type="soil",
    extracted_text="SOIL ANALYSIS pH 5.6 N 0.15 P 250",
    laboratory="Agro Lab"
)


def build(vision: FakeVisionService, ocr: FakeOCREngine, **settings) -> ExtractionOrchestrator:
    return ExtractionOrchestrator(
        vision_extractor=VisionExtractor(vision, timeout=settings.pop("vision_timeout", 1.0)),
        ocr_engine=ocr,
        settings=ExtractionSettings(**settings)
    )


def extract(orchestrator: ExtractionOrchestrator, request: ExtractionRequest, progress=None):
    return asyncio.run(orchestrator.extract(request, progress))


class TestVisionTier:
    def test_soil_report(self, png_request):
        vision, ocr = FakeVisionService(SOIL_REPLY), FakeOCREngine()

        result = extract(build(vision, ocr), png_request)

        assert result.tier_used is TierUsed.VISION
        assert result.analysis_type is AnalysisType.SOIL
        assert result.parameters["pH"] == ExtractedParameter(5.6, "", 0.95)
        assert result.parameters["N"] == ExtractedParameter(0.15, "%", 0.9)
        assert result.parameters["P"] == ExtractedParameter(250.0, "ppm", 0.5)
        assert [w.parameter_key for w in result.warnings] == ["P"]
        assert result.laboratory == "Agro Lab"
        assert result.confidence == 0.9
        assert "processedAt" in result.sample_info
        assert ocr.calls == 0
        assert len(vision.calls) == 1

    def test_vision_receives_original_png(self, png_request):
        vision = FakeVisionService(SOIL_REPLY)
        extract(build(vision, FakeOCREngine()), png_request)
        content, mime_type, _ = vision.calls[0]
        assert (content, mime_type) == (png_request.content, "image/png")

    def test_pdf_sent_as_png(self, pdf_bytes):
        vision = FakeVisionService(SOIL_REPLY)
        extract(build(vision, FakeOCREngine()), ExtractionRequest(pdf_bytes, "application/pdf"))
        _, mime_type, _ = vision.calls[0]
        assert mime_type == "image/png"

    def test_request_metadata_wins(self, png_bytes):
        reply = vision_reply({"pH": 5.6}, analysis_type="soil", sampleInfo={"sampleId": "doc-1", "depth": "0-15"})
        request = ExtractionRequest(
            png_bytes, "image/png", sample_type="leaf",
            metadata=SampleMetadata(sample_id="req-1", date="2026-03-01")
        )

        result = extract(build(FakeVisionService(reply), FakeOCREngine()), request)

        assert result.analysis_type is AnalysisType.LEAF
        assert result.sample_info["sampleId"] == "req-1"
        assert result.sample_info["date"] == "2026-03-01"
        assert result.sample_info["depth"] == "0-15"

    def test_missing_confidences_defaulted(self, png_request):
        reply = vision_reply({"S": {"value": 12, "unit": "ppm"}}, confidence=None)
        result = extract(build(FakeVisionService(reply), FakeOCREngine()), png_request)
        assert result.confidence == 0.8
        assert result.parameters["S"].confidence == 0.7


class TestFallback:
    def test_malformed_json_falls_back_to_ocr(self, png_request):
        vision = FakeVisionService("I'm sorry, the image is unreadable")
        ocr = FakeOCREngine("pH: 5.6\nNitrogen 0.12")

        result = extract(build(vision, ocr), png_request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert result.parameters["pH"] == ExtractedParameter(5.6, "", 0.6)
        assert result.parameters["N"] == ExtractedParameter(0.12, "", 0.6)
        assert result.confidence == 0.5
        assert result.raw_text == "pH: 5.6\nNitrogen 0.12"
        assert result.attempts[0].error_kind == "MalformedResponse"
        assert result.attempts[1].succeeded
        assert ocr.calls == 1

    def test_soil_report_through_ocr(self, png_request):
        vision = FakeVisionService("not json")
        ocr = FakeOCREngine("pH 4.2, N 0.15%, P 250 ppm")
        request = ExtractionRequest(png_request.content, "image/png", sample_type="soil")

        result = extract(build(vision, ocr), request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert result.analysis_type is AnalysisType.SOIL
        assert result.parameters["pH"] == ExtractedParameter(4.2, "", 0.6)
        assert result.parameters["N"] == ExtractedParameter(0.15, "", 0.6)
        assert result.parameters["P"].value == 250.0
        assert result.parameters["P"].confidence <= 0.5
        assert [w.parameter_key for w in result.warnings] == ["P"]

    def test_oversized_number_in_reply_falls_back(self, png_request):
        reply = '{"structuredData": {"parameters": {"P": {"value": 1' + "0" * 400 + "}}}}"
        ocr = FakeOCREngine("pH 5.6")

        result = extract(build(FakeVisionService(reply), ocr), png_request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert result.parameters["pH"].value == 5.6
        assert result.attempts[0].error_kind == "MalformedResponse"

    def test_normalization_error_stays_in_vision_tier(self, png_request):
        class BrokenNormalizer(ResultNormalizer):
            def from_vision_reply(self, reply, request=None):
                raise TypeError("unexpected reply shape")

        orchestrator = ExtractionOrchestrator(
            vision_extractor=VisionExtractor(FakeVisionService(SOIL_REPLY), timeout=1.0),
            ocr_engine=FakeOCREngine("pH 6.0"),
            normalizer=BrokenNormalizer()
        )

        result = extract(orchestrator, png_request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert result.attempts[0].error_kind == "MalformedResponse"
        assert "unexpected reply shape" in result.attempts[0].message

    def test_vision_timeout_falls_back(self, png_request):
        vision = FakeVisionService(SOIL_REPLY, delay=1.0)
        ocr = FakeOCREngine("pH 6.5")

        result = extract(build(vision, ocr, vision_timeout=0.05), png_request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert result.attempts[0].error_kind == "ServiceUnavailable"

    def test_soft_failure_uses_vision_text_in_regex_tier(self, png_request):
        reply = vision_reply({}, extracted_text="Leaf analysis  N: 2.6")
        result = extract(build(FakeVisionService(reply), FakeOCREngine()), png_request)

        assert result.tier_used is TierUsed.REGEX_ONLY
        assert result.parameters["N"].value == 2.6
        assert result.analysis_type is AnalysisType.LEAF
        assert result.confidence == 0.3
        assert [a.tier for a in result.attempts] == ["vision", "ocr", "regex"]
        assert not result.attempts[0].succeeded
        assert result.attempts[0].error_kind is None

    def test_nothing_found_anywhere(self, png_request):
        vision = FakeVisionService("not json")
        result = extract(build(vision, FakeOCREngine()), png_request)

        assert result.tier_used is TierUsed.REGEX_ONLY
        assert dict(result.parameters) == {}
        assert result.raw_text == "No text detected in image"
        assert result.confidence == 0.3
        assert result.needs_review

    def test_ocr_text_without_parameters(self, png_request):
        vision = FakeVisionService("not json")
        ocr = FakeOCREngine("Laboratory report, page 1")

        result = extract(build(vision, ocr), png_request)

        assert result.tier_used is TierUsed.REGEX_ONLY
        assert result.raw_text == "Laboratory report, page 1"

    def test_raising_ocr_engine_is_contained(self, png_request):
        vision = FakeVisionService("not json")
        ocr = FakeOCREngine(error=RuntimeError("engine crashed"))

        result = extract(build(vision, ocr), png_request)

        assert result.tier_used is TierUsed.REGEX_ONLY
        assert result.attempts[1].error_kind == "ServiceUnavailable"

    def test_vision_disabled(self, png_request):
        vision = FakeVisionService(SOIL_REPLY)
        result = extract(build(vision, FakeOCREngine("pH 5.0"), vision_enabled=False), png_request)

        assert result.tier_used is TierUsed.OCR_REGEX
        assert vision.calls == []
        assert result.attempts[0].message == "disabled"

    def test_progress_forwarded_to_ocr(self, png_request):
        reported = []
        extract(build(FakeVisionService("not json"), FakeOCREngine("pH 5")), png_request, reported.append)
        assert reported == [0, 100]


class TestRejectedInput:
    def test_empty_input_makes_no_calls(self):
        vision, ocr = FakeVisionService(SOIL_REPLY), FakeOCREngine()

        with pytest.raises(UnsupportedInputError):
            extract(build(vision, ocr), ExtractionRequest(b"", "image/png"))

        assert vision.calls == []
        assert ocr.calls == 0

    def test_unreadable_input_makes_no_calls(self):
        vision, ocr = FakeVisionService(SOIL_REPLY), FakeOCREngine()

        with pytest.raises(UnsupportedInputError):
            extract(build(vision, ocr), ExtractionRequest(b"garbage", "image/png"))

        assert vision.calls == []
        assert ocr.calls == 0


class TestResult:
    def test_to_dict(self, png_request):
        result = extract(build(FakeVisionService(SOIL_REPLY), FakeOCREngine()), png_request)
        data = result.to_dict()

        assert data["tierUsed"] == "vision"
        assert data["analysisType"] == "soil"
        assert data["laboratory"] == "Agro Lab"
        assert data["sourceFile"] == "report.png"
        assert data["warnings"][0]["expectedRange"] == [1.0, 200.0]
        assert data["attempts"] == [{"tier": "vision", "succeeded": True, "parameterCount": 3}]
        assert data["processingTime"] >= 0

    def test_extract_sync(self, png_request):
        orchestrator = build(FakeVisionService(SOIL_REPLY), FakeOCREngine())
        assert orchestrator.extract_sync(png_request).tier_used is TierUsed.VISION

    def test_result_is_immutable(self, png_request):
        result = extract(build(FakeVisionService(SOIL_REPLY), FakeOCREngine()), png_request)
        with pytest.raises(TypeError):
            result.parameters["K"] = ExtractedParameter(1.0)

    def test_cancellation_propagates(self, png_request):
        orchestrator = build(FakeVisionService(SOIL_REPLY, delay=5.0), FakeOCREngine(), vision_timeout=10.0)

        async def scenario():
            task = asyncio.ensure_future(orchestrator.extract(png_request))
            await asyncio.sleep(0.05)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(scenario())
