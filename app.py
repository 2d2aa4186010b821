"""
Dadi Care — Gradio Application.

Hosts the healthcare-assistance widgets on the server, so the Gemini key
never reaches the browser:
  - Dadi, the caring grandmother assistant (with medicine reminders)
  - The healthcare triage assistant (with recommendation badge)
  - Medicine authenticity verification
  - Emergency incident reporting with hospital matching
"""

import asyncio
import logging
from datetime import date

import gradio as gr

from assistant.personas import DADI, TRIAGE
from assistant.models import PersonaConfig
from assistant.recommendation import RECOMMENDATION_LABELS, extract_recommendation
from assistant.response_client import ResponseClient, create_response_client
from assistant.session import AssistantSession
from assistant.speech import GoogleSpeechBackend, SpeechIO
from assistant.states import SPEECH_LABELS, SpeechState
from care.geocoding import BigDataCloudGeocoder, locate
from care.incidents import (
    INCIDENT_LABELS,
    HospitalMatch,
    IncidentReport,
    Priority,
    ReportValidationError,
    StaticHospitalDirectory,
    submit_incident,
)
from care.medicine import (
    MedicineRegistry,
    StaticMedicineRegistry,
    VerificationInputError,
    VerificationRequest,
    VerificationStatus,
    verify_medicine,
)
from care.reminders import ReminderBook
from database.mongo_client import MongoDBClient, MongoMedicineRegistry
import config

logger = logging.getLogger(__name__)

# ── Custom CSS ─────────────────────────────────────────────────────────────

CUSTOM_CSS = """
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&display=swap');

.gradio-container {
    font-family: 'Inter', sans-serif !important;
    max-width: 1200px !important;
}

.header-banner {
    background: linear-gradient(135deg, #be185d 0%, #db2777 40%, #f472b6 100%);
    padding: 24px 32px;
    border-radius: 16px;
    margin-bottom: 16px;
    color: white;
    box-shadow: 0 8px 32px rgba(190, 24, 93, 0.25);
}

.header-banner h1 {
    margin: 0 0 6px 0;
    font-size: 26px;
    font-weight: 700;
}

.header-banner p {
    margin: 0;
    font-size: 14px;
    opacity: 0.9;
}

.send-btn {
    background: linear-gradient(135deg, #be185d, #f472b6) !important;
    border: none !important;
    color: white !important;
    font-weight: 600 !important;
    border-radius: 12px !important;
    min-height: 45px !important;
}

.reset-btn {
    background: white !important;
    border: 2px solid #e5e7eb !important;
    color: #6b7280 !important;
    border-radius: 12px !important;
}

.emergency-btn {
    background: linear-gradient(135deg, #b91c1c, #ef4444) !important;
    color: white !important;
    font-weight: 700 !important;
}

.footer-note {
    text-align: center;
    font-size: 12px;
    color: #9ca3af;
    margin-top: 12px;
    padding: 8px;
}
"""

SETUP_MESSAGE = (
    "⚠️ **Setup Required**: Please set your `GOOGLE_API_KEY` in the `.env` file.\n\n"
    "1. Copy `.env.example` to `.env`\n"
    "2. Add your Gemini API key from [Google AI Studio](https://aistudio.google.com/apikey)\n"
    "3. Restart the application"
)


# ── Initialize Core Components ─────────────────────────────────────────────

def initialize_components() -> tuple[ResponseClient | None, MongoDBClient, MedicineRegistry]:
    """Initialize the response client, database client and medicine registry."""
    try:
        client = create_response_client()
    except ValueError as e:
        logger.error("[Init] %s", e)
        client = None

    db = MongoDBClient()
    if db.connected:
        db.seed_trusted_medicines()
        registry: MedicineRegistry = MongoMedicineRegistry(db)
    else:
        registry = StaticMedicineRegistry()
    return client, db, registry


def _parse_expiry(value: str) -> date | None:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise VerificationInputError("Expiry date must look like YYYY-MM-DD") from None


def format_verification(result) -> str:
    lines = [f"### {result.title}", "", result.message, ""]
    lines.append(f"- **Medicine:** {result.medicine_name or '—'}")
    lines.append(f"- **Manufacturer:** {result.manufacturer or '—'}")
    if result.batch_number:
        lines.append(f"- **Batch:** `{result.batch_number}`")
    if result.expiry_date:
        lines.append(f"- **Expiry:** {result.expiry_date.isoformat()}")
    if result.description and result.status is VerificationStatus.SAFE:
        lines.append(f"- **About:** {result.description}")
    lines.append(f"- **Verified at:** {result.verified_at:%d %b %Y, %H:%M}")
    return "\n".join(lines)


def care_choices(match: HospitalMatch) -> list[tuple[str, int]]:
    """Radio choices for the matched hospitals, or the suggested areas."""
    if match.found:
        return [
            (f"{h.name} · {h.distance_km} km · {h.specialization}", h.id)
            for h in match.hospitals
        ]
    return [(f"{a.name} ({a.distance_km} km)", a.id) for a in match.suggested_areas]


def format_match(report: IncidentReport, match: HospitalMatch) -> str:
    lines = [f"### {INCIDENT_LABELS[report.incident_type]} · {report.priority.value} priority"]
    if report.location:
        lines.append(f"📍 {report.location.describe()}")
    if match.found:
        lines.append(f"\n✅ Found {len(match.hospitals)} nearby facilities:\n")
        lines.append("| Hospital | Distance | Availability | Specialization |")
        lines.append("|---|---|---|---|")
        for h in match.hospitals:
            lines.append(f"| {h.name} | {h.distance_km} km | {h.availability} | {h.specialization} |")
    elif match.suggested_areas:
        lines.append("\nℹ️ No hospitals available in your area. Pick a nearby area to search.")
    else:
        lines.append("\nℹ️ No hospitals or nearby areas found. The report can still be sent.")
    return "\n".join(lines)


def format_receipt(receipt) -> str:
    lines = [f"### 🚑 {receipt.message}", ""]
    if receipt.report.location:
        lines.append(f"📍 {receipt.report.location.describe()}")
    if receipt.assigned_hospital:
        h = receipt.assigned_hospital
        lines.append(f"- **Hospital:** {h.name} ({h.distance_km} km, {h.specialization})")
    elif receipt.assigned_area:
        lines.append(f"- **Searching in:** {receipt.assigned_area.name} ({receipt.assigned_area.distance_km} km)")
    if receipt.report_id:
        lines.append(f"\n🆔 Report reference: `{receipt.report_id[-8:]}`")
    lines.append("\n*If the situation is life-threatening, call **112** now.*")
    return "\n".join(lines)


# ── Build Gradio App ───────────────────────────────────────────────────────

def create_app():
    """Build and return the Gradio application."""

    response_client, db_client, medicine_registry = initialize_components()
    speech_backend = GoogleSpeechBackend()
    hospital_directory = StaticHospitalDirectory()
    geocoder = BigDataCloudGeocoder() if config.GEOCODING_ENABLED else None

    def new_session(persona: PersonaConfig, display_name: str | None) -> AssistantSession | None:
        if response_client is None:
            return None
        return AssistantSession(
            persona,
            response_client,
            speech=SpeechIO(speech_backend),
            display_name=display_name,
            request_timeout=config.REQUEST_TIMEOUT_SECONDS,
        )

    # ── Event Handlers ─────────────────────────────────────────────────

    def load_sessions(request: gr.Request):
        """Create this visitor's sessions, greeting them by name when signed in."""
        display_name = getattr(request, "username", None) if request else None
        dadi = new_session(DADI, display_name)
        triage = new_session(TRIAGE, display_name)
        setup = [{"role": "assistant", "content": SETUP_MESSAGE}]
        return (
            dadi,
            triage,
            dadi.history() if dadi else setup,
            triage.history() if triage else setup,
            ReminderBook(),
        )

    async def respond(message, session, persona_status):
        """Show the user's message right away, then the reply."""
        if session is None:
            yield [{"role": "assistant", "content": SETUP_MESSAGE}], message, ""
            return
        if not message or not message.strip() or session.is_loading:
            yield session.history(), message, ""
            return

        turn = asyncio.create_task(session.submit(message))
        await asyncio.sleep(0)
        yield session.history(), "", f"⏳ *{session.persona.thinking_label}*"

        await turn
        yield session.history(), "", persona_status(session)

    async def respond_dadi(message, session):
        async for update in respond(message, session, lambda s: ""):
            yield update

    async def respond_triage(message, session):
        async for update in respond(message, session, recommendation_badge):
            yield update

    def recommendation_badge(session: AssistantSession) -> str:
        last = session.last_bot_message()
        recommendation = extract_recommendation(last.text) if last else None
        return RECOMMENDATION_LABELS[recommendation] if recommendation else ""

    def reset_conversation(session):
        """Start a new conversation."""
        if session is None:
            return [{"role": "assistant", "content": SETUP_MESSAGE}], ""
        session.reset()
        return session.history(), ""

    async def read_aloud(session, text):
        if session is None or session.speech is None:
            return gr.update(), gr.update()
        if not session.speech.capabilities.can_speak:
            gr.Warning("Text-to-speech is not available on this server.")
            return gr.update(), gr.update()

        utterance = await session.toggle_speech(text)
        label = SPEECH_LABELS[session.speech.state]
        if utterance is None:
            return gr.update(value=None), gr.update(value=label)
        return gr.update(value=utterance.audio_path, autoplay=True), gr.update(value=label)

    async def toggle_speech(session):
        """Read the latest reply aloud, or stop reading."""
        last = session.last_bot_message() if session else None
        return await read_aloud(session, last.text if last else "")

    async def read_selected(session, evt: gr.SelectData):
        """Read the clicked reply aloud, or stop reading."""
        if session is None:
            return gr.update(), gr.update()
        index = evt.index[0] if isinstance(evt.index, (list, tuple)) else evt.index
        message = session.bot_message_at(int(index))
        if message is None:
            return gr.update(), gr.update()
        return await read_aloud(session, message.text)

    def playback_finished(session):
        """The browser reached the end of the audio (or it was paused)."""
        if session is not None and session.speech is not None:
            current = session.speech.current
            session.speech.playback_finished(current.id if current else None)
        return gr.update(value=SPEECH_LABELS[SpeechState.IDLE])

    async def dictate(audio_path, session, current_text):
        """Fill the input box from a recorded clip."""
        if session is None or session.speech is None:
            return current_text
        if not session.speech.capabilities.can_listen:
            gr.Warning("Voice input is not available on this server.")
            return current_text
        text = await session.dictate(audio_path)
        if text is None:
            gr.Warning("Sorry, I could not hear that clearly. Please try again.")
            return current_text
        return text

    # ── Reminders ──────────────────────────────────────────────────────

    def add_reminder(book, medicine, time, frequency):
        try:
            book.add(medicine or "", time or "", frequency or "")
        except ValueError as e:
            gr.Warning(str(e))
        return book.as_rows(), "", ""

    def toggle_reminder(book, reminder_id):
        if reminder_id is not None and book.toggle(int(reminder_id)) is None:
            gr.Warning(f"No reminder with id {int(reminder_id)}")
        return book.as_rows()

    def delete_reminder(book, reminder_id):
        if reminder_id is not None and not book.delete(int(reminder_id)):
            gr.Warning(f"No reminder with id {int(reminder_id)}")
        return book.as_rows()

    # ── Medicine Verification ──────────────────────────────────────────

    def run_verification(name, manufacturer, batch, expiry, photo):
        try:
            request = VerificationRequest(
                medicine_name=name or "",
                manufacturer=manufacturer or "",
                batch_number=batch or "",
                expiry_date=_parse_expiry(expiry),
                photo_path=photo,
            )
            result = verify_medicine(request, medicine_registry)
        except VerificationInputError as e:
            gr.Warning(str(e))
            return ""
        return format_verification(result)

    # ── Emergency Reports ──────────────────────────────────────────────

    async def find_care(kind, priority, description, photo, voice_note, lat, lon, address, request: gr.Request):
        """Step one: check the report and list nearby care to choose from."""
        try:
            report = IncidentReport.from_form(
                kind,
                priority,
                description,
                photo_path=photo,
                audio_path=voice_note,
                location=await locate(lat, lon, address, geocoder),
                reporter=getattr(request, "username", None) if request else None,
            )
        except ReportValidationError as e:
            gr.Warning(str(e))
            return None, gr.update(visible=False, choices=[], value=None), gr.update(visible=False), ""

        match = hospital_directory.match(report)
        choices = care_choices(match)
        return (
            (report, match),
            gr.update(
                choices=choices,
                value=choices[0][1] if choices else None,
                label="Choose a hospital" if match.found else "Choose an area to search",
                visible=bool(choices),
            ),
            gr.update(visible=True),
            format_match(report, match),
        )

    def confirm_incident(pending, choice):
        """Step two: send the report to the chosen hospital or area."""
        if pending is None:
            gr.Warning("Please fill in the report and find hospitals first.")
            return gr.update(), None, gr.update(), gr.update()
        report, match = pending
        selected = int(choice) if choice is not None else None
        try:
            receipt = submit_incident(
                report,
                hospital_directory,
                store=db_client,
                match=match,
                selected_hospital_id=selected if match.found else None,
                selected_area_id=None if match.found else selected,
            )
        except ReportValidationError as e:
            gr.Warning(str(e))
            return gr.update(), pending, gr.update(), gr.update()
        return (
            format_receipt(receipt),
            None,
            gr.update(visible=False, choices=[], value=None),
            gr.update(visible=False),
        )

    # ── Build UI ───────────────────────────────────────────────────────

    with gr.Blocks(
        css=CUSTOM_CSS,
        title="Dadi Care — Your Health Companion",
        theme=gr.themes.Soft(
            primary_hue=gr.themes.colors.pink,
            secondary_hue=gr.themes.colors.teal,
            neutral_hue=gr.themes.colors.gray,
            font=gr.themes.GoogleFont("Inter"),
        ),
    ) as app:

        dadi_state = gr.State(None)
        triage_state = gr.State(None)
        reminder_state = gr.State(None)

        gr.HTML(f"""
        <div class="header-banner">
            <h1>{config.APP_TITLE}</h1>
            <p>{config.APP_DESCRIPTION}</p>
        </div>
        """)

        with gr.Tabs():

            # ── Dadi ───────────────────────────────────────────────────
            with gr.Tab("💗 Dadi"):
                dadi_chat = gr.Chatbot(type="messages", height=460, label="Dadi - Your Medical Assistant")
                with gr.Row():
                    dadi_mic = gr.Audio(sources=["microphone"], type="filepath", label="🎙️ Voice input", scale=2)
                    dadi_msg = gr.Textbox(placeholder=DADI.input_placeholder, show_label=False, scale=5, container=False)
                    dadi_send = gr.Button("Send ➤", variant="primary", scale=1, elem_classes=["send-btn"], min_width=100)
                dadi_status = gr.Markdown("")
                with gr.Row():
                    dadi_listen = gr.Button(SPEECH_LABELS[SpeechState.IDLE], size="sm")
                    dadi_reset = gr.Button("🔄 New Conversation", variant="secondary", elem_classes=["reset-btn"], size="sm")
                dadi_audio = gr.Audio(label="Dadi speaking", interactive=False, visible=True)

                with gr.Accordion("⏰ Medicine Reminders", open=False):
                    reminder_table = gr.Dataframe(
                        headers=["ID", "Medicine", "Time", "Frequency", "Status"],
                        interactive=False,
                    )
                    with gr.Row():
                        rem_medicine = gr.Textbox(label="Medicine", placeholder="e.g., Metformin 500mg")
                        rem_time = gr.Textbox(label="Time", placeholder="e.g., 08:00 PM")
                        rem_frequency = gr.Textbox(label="Frequency", placeholder="e.g., once daily")
                        rem_add = gr.Button("➕ Add Reminder")
                    with gr.Row():
                        rem_id = gr.Number(label="Reminder ID", precision=0)
                        rem_toggle = gr.Button("Enable / Disable")
                        rem_delete = gr.Button("🗑️ Delete")

                gr.HTML("""
                <div class="footer-note">
                    💗 Dadi provides guidance based on experience and knowledge,
                    but always consult a doctor for medical advice.
                </div>
                """)

            # ── Triage ─────────────────────────────────────────────────
            with gr.Tab("🩺 Symptom Triage"):
                triage_chat = gr.Chatbot(type="messages", height=460, label="Healthcare Triage Assistant")
                with gr.Row():
                    triage_msg = gr.Textbox(placeholder=TRIAGE.input_placeholder, show_label=False, scale=5, container=False)
                    triage_send = gr.Button("Send ➤", variant="primary", scale=1, elem_classes=["send-btn"], min_width=100)
                triage_status = gr.Markdown("")
                with gr.Row():
                    triage_listen = gr.Button(SPEECH_LABELS[SpeechState.IDLE], size="sm")
                    triage_reset = gr.Button("🔄 New Consultation", variant="secondary", elem_classes=["reset-btn"], size="sm")
                triage_audio = gr.Audio(label="Assistant speaking", interactive=False)

                gr.Examples(
                    examples=[
                        "I have a mild headache since this morning",
                        "My child has high fever and vomiting",
                        "I have chest pain and difficulty breathing",
                    ],
                    inputs=triage_msg,
                    label="💡 Try these examples:",
                )

            # ── Verify Medicine ────────────────────────────────────────
            with gr.Tab("💊 Verify Medicine"):
                with gr.Row():
                    with gr.Column():
                        med_photo = gr.Image(type="filepath", label="Photo of the medicine (optional)")
                    with gr.Column():
                        med_name = gr.Textbox(label="Medicine Name", placeholder="e.g., Paracetamol 500mg")
                        med_maker = gr.Textbox(label="Manufacturer", placeholder="e.g., Cipla Ltd")
                        med_batch = gr.Textbox(label="Batch Number", placeholder="e.g., PCM12345")
                        med_expiry = gr.Textbox(label="Expiry Date", placeholder="YYYY-MM-DD")
                        med_verify = gr.Button("🔍 Verify Medicine", variant="primary")
                med_result = gr.Markdown("")

            # ── Emergency ──────────────────────────────────────────────
            with gr.Tab("🚨 Report Emergency"):
                inc_type = gr.Radio(
                    choices=[(label, kind.value) for kind, label in INCIDENT_LABELS.items()],
                    label="Incident Type",
                )
                inc_priority = gr.Radio(
                    choices=[p.value for p in Priority], value=Priority.HIGH.value, label="Priority"
                )
                inc_description = gr.Textbox(label="Describe what happened", lines=3)
                with gr.Row():
                    inc_photo = gr.Image(type="filepath", label="📷 Photo")
                    inc_voice = gr.Audio(sources=["microphone"], type="filepath", label="🎙️ Voice note")
                with gr.Row():
                    inc_lat = gr.Number(label="Latitude")
                    inc_lon = gr.Number(label="Longitude")
                    inc_address = gr.Textbox(label="Address / landmark", placeholder="Looked up from the coordinates if left empty")
                inc_submit = gr.Button("🔍 Find Hospitals", elem_classes=["emergency-btn"])
                inc_result = gr.Markdown("")
                inc_pending = gr.State(None)
                inc_choice = gr.Radio(choices=[], label="Choose a hospital", visible=False)
                inc_confirm = gr.Button("✅ Confirm & Send Report", elem_classes=["emergency-btn"], visible=False)

        gr.HTML("""
        <div class="footer-note">
            ⚠️ <strong>Disclaimer:</strong> These assistants offer guidance only and do not
            provide medical diagnoses. In emergencies, call <strong>112</strong> immediately.
        </div>
        """)

        # ── Event Bindings ─────────────────────────────────────────────

        app.load(
            load_sessions,
            inputs=None,
            outputs=[dadi_state, triage_state, dadi_chat, triage_chat, reminder_state],
        ).then(lambda book: book.as_rows(), inputs=reminder_state, outputs=reminder_table)

        for msg, send_btn, chat, state, status, handler in (
            (dadi_msg, dadi_send, dadi_chat, dadi_state, dadi_status, respond_dadi),
            (triage_msg, triage_send, triage_chat, triage_state, triage_status, respond_triage),
        ):
            msg.submit(handler, inputs=[msg, state], outputs=[chat, msg, status])
            send_btn.click(handler, inputs=[msg, state], outputs=[chat, msg, status])

        for reset_btn, chat, state, status in (
            (dadi_reset, dadi_chat, dadi_state, dadi_status),
            (triage_reset, triage_chat, triage_state, triage_status),
        ):
            reset_btn.click(reset_conversation, inputs=[state], outputs=[chat, status])

        for listen_btn, audio, chat, state in (
            (dadi_listen, dadi_audio, dadi_chat, dadi_state),
            (triage_listen, triage_audio, triage_chat, triage_state),
        ):
            listen_btn.click(toggle_speech, inputs=[state], outputs=[audio, listen_btn])
            chat.select(read_selected, inputs=[state], outputs=[audio, listen_btn])
            audio.stop(playback_finished, inputs=[state], outputs=[listen_btn])
            audio.pause(playback_finished, inputs=[state], outputs=[listen_btn])

        dadi_mic.stop_recording(dictate, inputs=[dadi_mic, dadi_state, dadi_msg], outputs=[dadi_msg])

        rem_add.click(
            add_reminder,
            inputs=[reminder_state, rem_medicine, rem_time, rem_frequency],
            outputs=[reminder_table, rem_medicine, rem_time],
        )
        rem_toggle.click(toggle_reminder, inputs=[reminder_state, rem_id], outputs=[reminder_table])
        rem_delete.click(delete_reminder, inputs=[reminder_state, rem_id], outputs=[reminder_table])

        med_verify.click(
            run_verification,
            inputs=[med_name, med_maker, med_batch, med_expiry, med_photo],
            outputs=[med_result],
        )

        inc_submit.click(
            find_care,
            inputs=[inc_type, inc_priority, inc_description, inc_photo, inc_voice, inc_lat, inc_lon, inc_address],
            outputs=[inc_pending, inc_choice, inc_confirm, inc_result],
        )
        inc_confirm.click(
            confirm_incident,
            inputs=[inc_pending, inc_choice],
            outputs=[inc_result, inc_pending, inc_choice, inc_confirm],
        )

    return app


# ── Entry Point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app = create_app()
    app.launch(
        server_name=config.SERVER_NAME,
        server_port=config.SERVER_PORT,
        share=False,
        show_error=True,
    )
