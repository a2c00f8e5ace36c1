#!/usr/bin/env python3
"""
Web-based Startup Workflow Survey - streamed chat with optional voice mode.

Routes:
- /api/chat: relays a streamed Claude reply as server-sent events
- /api/suggestions: one-tap answer suggestions for a question
- /api/sheets: appends a transcript row to Google Sheets
- /api/elevenlabs/*: credentials and connectivity for voice mode

Run:
    python3 web_survey.py

Then open: http://localhost:5001
"""

import uuid

from flask import Flask, render_template_string, request, jsonify, Response, stream_with_context

from survey.config import Settings, load_dotenv
from survey.errors import SurveyError, ValidationError, UpstreamTransportError
from survey.llm import AnthropicProvider, Message
from survey.prompts import INITIAL_GREETING, build_system_prompt
from survey.session.chat_client import SessionContext
from survey.session.completion import KeywordCoveragePolicy
from survey.session.stream_decoder import DONE_SENTINEL, format_frame
from survey.sheets import SheetsStore, ConversationData, build_summary, exit_mode_label
from survey.suggestions import generate_suggestions
from survey.voice.elevenlabs import ElevenLabsClient

load_dotenv()

app = Flask(__name__)

CHAT_MAX_TOKENS = 1024

HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Startup Workflow Survey</title>
    <style>
        body { font-family: -apple-system, system-ui, sans-serif; max-width: 42rem; margin: 0 auto; padding: 4rem 1rem 2rem; color: #1d1d1f; }
        .msg { margin-bottom: 1.25rem; white-space: pre-wrap; }
        .user { text-align: right; color: #0071e3; }
        #ending { display: none; text-align: center; color: #6e6e73; }
        #timer { position: fixed; bottom: 1rem; right: 1rem; font-size: 10px; color: #aeaeb2; }
        textarea { width: 100%; font: inherit; padding: .75rem; border-radius: 12px; border: 1px solid #d2d2d7; }
    </style>
</head>
<body>
    <p id="ending">Survey completing - thank you for your time! 🙏</p>
    <div id="messages"><div class="msg">{{ greeting }}</div></div>
    <form id="form"><textarea id="input" rows="2" autofocus></textarea></form>
    <div id="timer"></div>
<script>
    const messages = [{role: 'assistant', content: {{ greeting|tojson }}}];
    const sessionId = crypto.randomUUID();
    let startedAt = null, busy = false, ending = false;
    const input = document.getElementById('input');
    const elapsed = () => startedAt ? Math.floor((Date.now() - startedAt) / 1000) : 0;

    function record(mode) {
        return JSON.stringify({
            conversation: messages, sessionId,
            latestResponse: messages[messages.length - 1].content,
            sessionDuration: elapsed(),
            isAbruptExit: mode === 'abrupt', isAutoSave: mode === 'auto'
        });
    }
    function save(mode) {
        fetch('/api/sheets', {method: 'POST', headers: {'Content-Type': 'application/json'}, body: record(mode)})
            .catch(err => console.error('save failed', err));
    }
    function bubble(role, text) {
        const el = document.createElement('div');
        el.className = 'msg ' + role;
        el.textContent = text;
        document.getElementById('messages').appendChild(el);
        return el;
    }

    input.addEventListener('input', () => { if (!startedAt) startedAt = Date.now(); });
    input.addEventListener('keydown', e => {
        if (e.key === 'Enter' && !e.shiftKey) { e.preventDefault(); document.getElementById('form').requestSubmit(); }
    });
    setInterval(() => { if (startedAt) document.getElementById('timer').textContent = elapsed() + 's'; }, 1000);
    window.addEventListener('beforeunload', () => {
        if (startedAt && messages.length > 1) {
            navigator.sendBeacon('/api/sheets', new Blob([record('abrupt')], {type: 'application/json'}));
        }
    });

    document.getElementById('form').addEventListener('submit', async e => {
        e.preventDefault();
        const text = input.value.trim();
        if (!text || busy || ending) return;
        if (!startedAt) startedAt = Date.now();
        input.value = '';
        busy = true;
        input.disabled = true;
        messages.push({role: 'user', content: text});
        bubble('user', text);
        const el = bubble('assistant', '');
        let reply = '', done = false;
        try {
            const res = await fetch('/api/chat', {
                method: 'POST', headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({messages, sessionDuration: elapsed()})
            });
            if (!res.ok || !res.body) throw new Error('Failed to send message');
            const reader = res.body.getReader(), decoder = new TextDecoder();
            let buffer = '';
            while (!done) {
                const {done: eof, value} = await reader.read();
                if (eof) break;
                buffer += decoder.decode(value, {stream: true});
                const lines = buffer.split('\\n');
                buffer = lines.pop();
                for (const line of lines) {
                    if (!line.startsWith('data: ')) continue;
                    const data = line.slice(6);
                    if (data === '[DONE]') { done = true; break; }
                    try {
                        const parsed = JSON.parse(data);
                        if (parsed.error) throw new Error(parsed.error);
                        if (parsed.text) { reply += parsed.text; el.textContent = reply; }
                    } catch (err) { if (err instanceof SyntaxError) continue; throw err; }
                }
            }
            if (!done) throw new Error('Stream ended before completion');
            messages.push({role: 'assistant', content: reply});
            if (messages.length > 2) save('auto');
            if (reply.toLowerCase().includes('perfect, thanks')) {
                ending = true;
                document.getElementById('ending').style.display = 'block';
                save('normal');
            }
        } catch (err) {
            el.textContent = "I'm sorry, there was an error processing your message. Please try again.";
            messages.push({role: 'assistant', content: el.textContent});
        } finally {
            busy = false;
            input.disabled = ending;
            if (!ending) input.focus();
        }
    });
</script>
</body>
</html>
"""


@app.route('/')
def index():
    return render_template_string(HTML_TEMPLATE, greeting=INITIAL_GREETING)


# ── Chat ─────────────────────────────────────────────────────────────


def get_chat_provider(settings: Settings) -> AnthropicProvider:
    return AnthropicProvider(
        api_key=settings.require_anthropic(),
        model=settings.anthropic_model,
        max_tokens=CHAT_MAX_TOKENS
    )


def _parse_messages(data) -> list:
    if not isinstance(data, dict):
        raise ValidationError('Invalid messages format')
    messages = data.get('messages')
    if not messages or not isinstance(messages, list):
        raise ValidationError('Invalid messages format')
    parsed = []
    for item in messages:
        if not isinstance(item, dict) or item.get('role') not in ('user', 'assistant'):
            raise ValidationError('Invalid messages format')
        if not isinstance(item.get('content'), str):
            raise ValidationError('Invalid messages format')
        parsed.append(Message.from_dict(item))
    return parsed


@app.route('/api/chat', methods=['POST'])
def chat():
    """Stream the interviewer's next reply as server-sent events."""
    try:
        settings = Settings.from_env()
        settings.require_anthropic()
        data = request.get_json(silent=True)
        messages = _parse_messages(data)
        context = SessionContext.from_dict(data)
        if 'shouldConclude' not in data:
            # The page sends no advice of its own; judge coverage from its history
            user_texts = [m.content for m in messages if m.role == 'user']
            context.should_conclude = KeywordCoveragePolicy().should_conclude(user_texts)

        system_prompt = build_system_prompt(
            should_conclude=context.should_conclude,
            ask_final_question=context.ask_final_question,
            session_duration=context.session_duration
        )
        provider = get_chat_provider(settings)
        deltas = provider.stream_chat(messages, system_prompt=system_prompt)

        # Pull the first delta here so connection failures still get a 500
        first = next(deltas, None)
    except SurveyError as error:
        if isinstance(error, UpstreamTransportError):
            print(f"Chat API error: {error.details or error.message}")
            return jsonify({'error': 'Failed to process chat message'}), 500
        return jsonify(error.to_dict()), error.status_code

    def generate():
        try:
            if first is not None:
                yield format_frame({'text': first})
            for text in deltas:
                yield format_frame({'text': text})
            yield format_frame(DONE_SENTINEL)
        except UpstreamTransportError as error:
            print(f"Streaming error: {error.details or error.message}")
            yield format_frame({'error': 'Failed to process chat message'})

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'Connection': 'keep-alive'}
    )


@app.route('/api/suggestions', methods=['POST'])
def suggestions():
    """Answer suggestions for the interviewer's latest question."""
    try:
        settings = Settings.from_env()
        settings.require_anthropic()
        data = request.get_json(silent=True) or {}
        question = data.get('question')
        if not question or not isinstance(question, str):
            raise ValidationError('Question is required')

        provider = get_chat_provider(settings)
        return jsonify(generate_suggestions(provider, question))
    except UpstreamTransportError as error:
        print(f"Suggestions API error: {error.details or error.message}")
        return jsonify({'error': 'Failed to generate suggestions'}), 500
    except SurveyError as error:
        return jsonify(error.to_dict()), error.status_code


# ── Google Sheets ────────────────────────────────────────────────────


def get_sheets_store(settings: Settings) -> SheetsStore:
    return SheetsStore.from_settings(settings)


@app.route('/api/sheets', methods=['POST'])
def save_to_sheets():
    """Append one transcript row. Each call writes a new row."""
    try:
        settings = Settings.from_env()
        settings.require_sheets()

        data = request.get_json(silent=True, force=True)
        if not isinstance(data, dict):
            raise ValidationError('Invalid conversation format')
        conversation = data.get('conversation')
        if not conversation or not isinstance(conversation, list):
            raise ValidationError('Invalid conversation format')
        if not all(isinstance(m, dict) for m in conversation):
            raise ValidationError('Invalid conversation format')

        is_abrupt = bool(data.get('isAbruptExit'))
        is_auto = bool(data.get('isAutoSave'))
        session_id = data.get('sessionId')
        if not isinstance(session_id, str) or not session_id:
            session_id = str(uuid.uuid4())

        duration = data.get('sessionDuration')
        record = ConversationData(
            session_id=session_id,
            messages=conversation,
            duration=duration if isinstance(duration, int) else None,
            summary=build_summary(str(data.get('latestResponse') or ''), is_abrupt, is_auto),
            exit_mode=exit_mode_label(is_abrupt, is_auto),
        )

        store = get_sheets_store(settings)
        store.initialize()
        store.append(record)

        return jsonify({'success': True, 'sessionId': session_id})
    except SurveyError as error:
        print(f"Sheets API error: {error.details or error.message}")
        return jsonify(error.to_dict()), error.status_code


@app.route('/api/sheets', methods=['GET'])
def initialize_sheet():
    """(Re)write the header row."""
    try:
        store = get_sheets_store(Settings.from_env())
        store.initialize()
        return jsonify({'success': True, 'message': 'Sheet initialized successfully'})
    except SurveyError as error:
        print(f"Sheets initialization error: {error.details or error.message}")
        return jsonify({'error': 'Failed to initialize Google Sheets'}), 500


# ── Voice (ElevenLabs) ───────────────────────────────────────────────


def get_voice_client(settings: Settings) -> ElevenLabsClient:
    api_key, agent_id = settings.require_voice()
    return ElevenLabsClient(api_key=api_key, agent_id=agent_id)


@app.route('/api/elevenlabs/conversation', methods=['POST'])
def voice_conversation():
    """Hand the voice client what it needs to open the agent socket."""
    try:
        voice = get_voice_client(Settings.from_env())
        data = request.get_json(silent=True) or {}
        if data.get('action') != 'start':
            raise ValidationError('Invalid action')

        return jsonify({
            'success': True,
            'agent_id': voice.agent_id,
            'api_key': voice.api_key,
            'message': 'Ready to connect to ElevenLabs agent'
        })
    except SurveyError as error:
        return jsonify(error.to_dict()), error.status_code


@app.route('/api/elevenlabs/test', methods=['POST'])
def voice_test():
    """Check that the ElevenLabs key works."""
    try:
        voice = get_voice_client(Settings.from_env())
        subscription = voice.check_subscription()
        return jsonify({
            'success': True,
            'message': 'ElevenLabs connection successful',
            'agentId': voice.agent_id,
            'subscription': {
                'tier': subscription.tier,
                'character_count': subscription.character_count,
                'character_limit': subscription.character_limit
            }
        })
    except SurveyError as error:
        print(f"ElevenLabs test error: {error.message}")
        return jsonify({'error': error.message, 'success': False}), error.status_code


@app.route('/api/elevenlabs/websocket', methods=['GET'])
def voice_websocket():
    """Agent socket URL and auth header for voice clients."""
    try:
        voice = get_voice_client(Settings.from_env())
        return jsonify({
            'success': True,
            'websocket_url': voice.websocket_url(),
            'headers': {'xi-api-key': voice.api_key}
        })
    except SurveyError as error:
        return jsonify(error.to_dict()), error.status_code


if __name__ == '__main__':
    print("""
╔═══════════════════════════════════════════════════════════════╗
║            STARTUP WORKFLOW SURVEY - CHAT + VOICE             ║
╠═══════════════════════════════════════════════════════════════╣
║  Chat: streamed replies from Claude                           ║
║  Voice: ElevenLabs conversational agent (survey-voice)        ║
║  Transcripts: appended to Google Sheets                       ║
╚═══════════════════════════════════════════════════════════════╝

Starting web server...

Open your browser to: http://localhost:5001

Press Ctrl+C to stop the server.
    """)

    app.run(debug=True, host='0.0.0.0', port=5001)
