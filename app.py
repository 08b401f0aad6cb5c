"""
Smart Document Q&A - Streamlit Web Interface

A browser front end over the same pipeline as interactive_qa.py.

RUN:
    streamlit run app.py

FEATURES:
- Rebuild the index from the knowledge base directory
- Ask questions in natural language
- See answers with [Source X] citations, similarity scores and cost
- Browse the knowledge base documents
- Session cost statistics
"""

import sys
from pathlib import Path

import streamlit as st

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_settings
from docqa.chunking import DocumentLoader, list_documents
from docqa.errors import DocQAError
from docqa.formatting import format_cost, format_similarity_score
from docqa.interactive import SessionStats
from docqa.provider import OpenAIProvider
from docqa.rag_pipeline import RAGPipeline


# Page configuration
st.set_page_config(
    page_title="Smart Document Q&A",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: 700;
        color: #1E3A8A;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        font-size: 1.1rem;
        color: #64748B;
        margin-bottom: 2rem;
    }
    .answer-box {
        background-color: #F0F9FF;
        border-left: 4px solid #0EA5E9;
        padding: 1.5rem;
        border-radius: 0 8px 8px 0;
        margin: 1rem 0;
    }
    .chunk-box {
        background-color: #FFFBEB;
        border: 1px solid #FCD34D;
        padding: 1rem;
        border-radius: 8px;
        margin: 0.5rem 0;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    if 'rag_pipeline' not in st.session_state:
        st.session_state.rag_pipeline = None
    if 'session_stats' not in st.session_state:
        st.session_state.session_stats = SessionStats()
    if 'chat_history' not in st.session_state:
        st.session_state.chat_history = []


def get_pipeline():
    """Load the saved index once per browser session."""
    if st.session_state.rag_pipeline is None:
        settings = get_settings()
        try:
            with st.spinner("Loading index..."):
                st.session_state.rag_pipeline = RAGPipeline.from_index_file(
                    OpenAIProvider(settings.openai), settings=settings
                )
        except DocQAError as e:
            st.warning(f"{e}")
    return st.session_state.rag_pipeline


def rebuild_index():
    settings = get_settings()
    try:
        with st.spinner("Chunking and embedding the knowledge base..."):
            rag = RAGPipeline(OpenAIProvider(settings.openai), settings=settings)
            rag.build_index()
    except DocQAError as e:
        st.error(f"❌ Index build failed: {e}")
        return

    st.session_state.rag_pipeline = rag
    st.rerun()


def render_sidebar(knowledge_base_dir: str):
    with st.sidebar:
        st.header("📁 Knowledge Base")

        if st.button("📥 Rebuild Index", type="primary", use_container_width=True):
            rebuild_index()

        rag = st.session_state.rag_pipeline
        if rag is not None:
            stats = rag.get_stats()
            st.caption(
                f"{stats['indexed_documents']} documents, {stats['total_chunks']} chunks indexed"
            )

        st.divider()
        st.subheader("📋 Documents")
        try:
            documents = list_documents(knowledge_base_dir)
        except DocQAError as e:
            st.caption(str(e))
            documents = []

        if not documents:
            st.caption("No documents found in knowledge base.")
        for info in documents:
            with st.expander(f"{info.filename} ({info.word_count} words)"):
                document = DocumentLoader.load(str(Path(knowledge_base_dir) / info.filename))
                st.text(document.content)

        st.divider()
        st.subheader("💰 Session Statistics")
        session = st.session_state.session_stats
        if session.queries:
            st.metric("Queries", session.queries)
            st.metric("Total cost", format_cost(session.total_cost))
            st.caption(
                f"Average {format_cost(session.average_cost)} per query, "
                f"~${session.projected_cost(100):.4f} per 100 queries"
            )
        else:
            st.caption("No queries processed in this session.")

        if st.session_state.chat_history:
            if st.button("🗑️ Clear History", use_container_width=True):
                st.session_state.chat_history = []
                st.session_state.session_stats = SessionStats()
                st.rerun()


def render_history():
    # Most recent first
    for chat in reversed(st.session_state.chat_history):
        result = chat['result']
        st.markdown(f"**Q: {result.question}**")
        st.markdown(f'<div class="answer-box">{result.answer}</div>', unsafe_allow_html=True)

        metric_cols = st.columns(4)
        with metric_cols[0]:
            st.metric("⏱️ Time", f"{result.timing['total_ms']:.0f}ms")
        with metric_cols[1]:
            st.metric("📊 Tokens", result.usage.total_tokens)
        with metric_cols[2]:
            st.metric("💵 Cost", format_cost(result.cost))
        with metric_cols[3]:
            if result.retrieved_chunks:
                st.metric("🎯 Top match", format_similarity_score(result.retrieved_chunks[0].similarity_score))

        if result.retrieved_chunks:
            with st.expander(f"📄 Sources ({len(result.retrieved_chunks)})"):
                for i, chunk in enumerate(result.retrieved_chunks, 1):
                    st.markdown(f"""
                    <div class="chunk-box">
                        <strong>[Source {i}: {chunk.filename}]</strong>
                        (Similarity: {format_similarity_score(chunk.similarity_score)})
                        <hr style="margin: 0.5rem 0;">
                        {chunk.text[:500]}{'...' if len(chunk.text) > 500 else ''}
                    </div>
                    """, unsafe_allow_html=True)

        st.divider()


def main():
    init_session_state()
    settings = get_settings()

    st.markdown('<p class="main-header">📚 Smart Document Q&A</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="sub-header">Ask questions about the knowledge base, answered with cited sources</p>',
        unsafe_allow_html=True
    )

    rag = get_pipeline()

    st.header("💬 Ask a Question")
    if rag is None:
        render_sidebar(settings.paths.knowledge_base_dir)
        st.info("👈 Build the index first.")
        return

    question = st.text_input(
        "Your question:",
        placeholder="e.g., What is the useState hook in React?",
        label_visibility="collapsed"
    )

    if st.button("🔍 Ask", type="primary") and question.strip():
        try:
            with st.spinner("Searching and generating answer..."):
                result = rag.query(question.strip())
        except DocQAError as e:
            st.error(f"Error processing your question: {e}")
        else:
            st.session_state.chat_history.append({'result': result})
            st.session_state.session_stats = st.session_state.session_stats.record(result.cost)

    render_sidebar(settings.paths.knowledge_base_dir)
    render_history()


if __name__ == "__main__":
    main()
